"""
Book repository implementation for the library lending service.

This repository is the persistence adapter for the Book aggregate:

1. **Reads**: list, get and substring search return BookView read models
2. **Aggregate loads**: load() rebuilds a Book entity with its full history,
   optionally row-locked for the duration of the transaction
3. **Writes**: add(), save() and delete() stage changes on the session; the
   caller's unit of work decides when they are committed

The repository never commits. InventoryService owns the transaction so the
counter update and the borrow-record write always land together.
"""

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..models.book import Book
from ..models.borrow_record import BorrowRecord, utc_now
from ..models.views import BookView
from .schema import Book as BookDB
from .schema import BorrowRecord as BorrowRecordDB
from .session import safe_query


class BookRepository:
    """
    Repository for book data access.

    Instances are bound to one session, which is one unit of work.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    # === Mapping ===

    @staticmethod
    def _to_view(row: BookDB) -> BookView:
        return BookView(
            id=UUID(row.id),
            title=row.title,
            author=row.author,
            year=row.year,
            isbn=row.isbn,
            available_copies=row.available_copies,
        )

    @staticmethod
    def _to_entity(row: BookDB) -> Book:
        book_id = UUID(row.id)
        history = [
            BorrowRecord.from_storage(
                id=UUID(record.id),
                book_id=book_id,
                borrowed_at=record.borrowed_at,
                returned_at=record.returned_at,
            )
            for record in row.borrow_records
        ]
        return Book.from_storage(
            id=book_id,
            title=row.title,
            author=row.author,
            year=row.year,
            isbn=row.isbn,
            available_copies=row.available_copies,
            history=history,
        )

    # === Reads ===

    def list_all(self) -> list[BookView]:
        """All books in insertion order."""
        query = select(BookDB).order_by(BookDB.created_at, BookDB.id)
        rows = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "list books"
        )
        return [self._to_view(row) for row in rows]

    def get(self, book_id: UUID) -> BookView | None:
        row = safe_query(
            self.session, lambda s: s.get(BookDB, str(book_id)), "get book", book_id
        )
        return self._to_view(row) if row is not None else None

    def search(self, query: str) -> list[BookView]:
        """
        Case-sensitive substring search over title, author and ISBN.

        instr() is used instead of LIKE so the match is case-sensitive and
        '%' or '_' in the query are taken literally. The empty string is a
        substring of everything, so an empty query returns every book.
        """
        statement = select(BookDB).order_by(BookDB.created_at, BookDB.id)
        if query:
            statement = statement.where(
                or_(
                    func.instr(BookDB.title, query) > 0,
                    func.instr(BookDB.author, query) > 0,
                    func.instr(BookDB.isbn, query) > 0,
                )
            )

        rows = safe_query(
            self.session, lambda s: s.execute(statement).scalars().all(), "search books"
        )
        return [self._to_view(row) for row in rows]

    def load(self, book_id: UUID, *, for_update: bool = False) -> Book | None:
        """
        Load the Book aggregate with its full borrow history.

        Args:
            book_id: Book identifier
            for_update: Take a row lock where the database supports it

        Returns:
            The entity, or None if no such book exists
        """
        statement = (
            select(BookDB)
            .where(BookDB.id == str(book_id))
            .options(selectinload(BookDB.borrow_records))
        )
        if for_update:
            statement = statement.with_for_update()

        row = safe_query(
            self.session,
            lambda s: s.execute(statement).scalar_one_or_none(),
            "load book",
            book_id,
        )
        return self._to_entity(row) if row is not None else None

    # === Writes ===

    def add(self, book: Book) -> None:
        """Stage a new book and any history it already carries."""
        now = utc_now()
        row = BookDB(
            id=str(book.id),
            title=book.title,
            author=book.author,
            year=book.year,
            isbn=book.isbn,
            available_copies=book.available_copies,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self._sync_history(row, book)

    def save(self, book: Book) -> None:
        """
        Stage the entity's current state onto its loaded row.

        Writes the counter, inserts records that are new since load() and
        seals records that were returned since load(). Sealed records are
        never rewritten.
        """
        row = self.session.get(BookDB, str(book.id))
        if row is None:
            raise LookupError(f"Book {book.id} was not loaded in this session")

        row.available_copies = book.available_copies
        self._sync_history(row, book)

    def _sync_history(self, row: BookDB, book: Book) -> None:
        existing = {record.id: record for record in row.borrow_records}
        for position, record in enumerate(book.history):
            stored = existing.get(str(record.id))
            if stored is None:
                row.borrow_records.append(
                    BorrowRecordDB(
                        id=str(record.id),
                        book_id=row.id,
                        sequence=position,
                        borrowed_at=record.borrowed_at,
                        returned_at=record.returned_at,
                    )
                )
            elif stored.returned_at is None and record.returned_at is not None:
                stored.returned_at = record.returned_at

    def delete(self, book_id: UUID) -> bool:
        """
        Stage deletion of a book and, by cascade, its borrow records.

        Returns:
            True if the book existed
        """
        row = safe_query(
            self.session, lambda s: s.get(BookDB, str(book_id)), "delete book", book_id
        )
        if row is None:
            return False
        self.session.delete(row)
        return True

    def count_records(self, book_id: UUID) -> int:
        """Number of stored borrow records for a book."""
        query = (
            select(func.count())
            .select_from(BorrowRecordDB)
            .where(BorrowRecordDB.book_id == str(book_id))
        )
        return safe_query(self.session, lambda s: s.execute(query).scalar() or 0, "count records")
