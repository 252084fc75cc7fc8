"""
SQLAlchemy database schema for the library lending service.

Two tables back the inventory:

- books: one row per title, holding the available-copies counter and a
  version counter used for optimistic concurrency
- borrow_records: one row per borrow event, keyed to its book with
  ON DELETE CASCADE so removing a book removes its history

`sequence` preserves the insertion order of a book's history; the unique
(book_id, sequence) pair also rejects two writers appending the same slot.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Book(Base):
    """
    Books table - the library's inventory.

    available_copies is the aggregate lending state; it is only written
    together with the matching borrow_records change in one transaction.
    """

    __tablename__ = "books"

    id = Column(String(36), primary_key=True)
    title = Column(String(200), nullable=False)
    author = Column(String(200), nullable=False)
    year = Column(Integer, nullable=False)
    isbn = Column(String(13), nullable=False)
    available_copies = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=True, default=func.now(), onupdate=func.now()
    )

    # No back-reference: a record knows its book only by book_id
    borrow_records = relationship(
        "BorrowRecord",
        order_by="BorrowRecord.sequence",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_author", "author"),
        Index("idx_book_isbn", "isbn"),
        CheckConstraint("available_copies >= 0", name="check_available_copies_non_negative"),
        CheckConstraint("year >= 1500", name="check_year_valid"),
    )


class BorrowRecord(Base):
    """
    Borrow records table - one row per lending event.

    returned_at is NULL while the copy is out and set exactly once.
    """

    __tablename__ = "borrow_records"

    id = Column(String(36), primary_key=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    borrowed_at = Column(DateTime(timezone=True), nullable=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_borrow_book", "book_id"),
        Index("idx_borrow_active", "book_id", "returned_at"),
        UniqueConstraint("book_id", "sequence", name="unique_history_position"),
        CheckConstraint("sequence >= 0", name="check_sequence_non_negative"),
        CheckConstraint(
            "returned_at IS NULL OR returned_at >= borrowed_at",
            name="check_returned_after_borrowed",
        ),
    )
