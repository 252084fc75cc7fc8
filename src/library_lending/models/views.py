"""
Boundary shapes exchanged with presentation adapters.

Adapters never see Book or BorrowRecord entities. They receive these flat,
serializable views and send CreateBookRequest for new books. Views dump with
camelCase aliases (availableCopies, borrowedAt, returnedAt) to keep the wire
shape stable regardless of Python naming.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .book import MIN_PUBLICATION_YEAR
from .borrow_record import BorrowRecord

ISBN_PATTERN = r"^\d{10}(\d{3})?$"
MAX_TEXT_LENGTH = 200
MAX_COPIES = 10_000


class BookView(BaseModel):
    """Read model for a book."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: UUID
    title: str
    author: str
    year: int
    isbn: str
    available_copies: int


class BorrowRecordView(BaseModel):
    """Read model for a borrow record. returned_at is None while active."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: UUID
    borrowed_at: datetime
    returned_at: datetime | None = None


class CreateBookRequest(BaseModel):
    """
    Input schema for creating a book.

    Every rule here is checked before a Book entity is constructed; the
    entity then applies its own rules (non-blank text, year upper bound).
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "year": 1965,
                "isbn": "9780441013593",
                "copies": 3,
            }
        },
    )

    title: str = Field(
        ...,
        description="Book title",
        min_length=1,
        max_length=MAX_TEXT_LENGTH,
    )

    author: str = Field(
        ...,
        description="Book author",
        min_length=1,
        max_length=MAX_TEXT_LENGTH,
    )

    year: int = Field(
        ...,
        description="Publication year",
        ge=MIN_PUBLICATION_YEAR,
    )

    isbn: str = Field(
        ...,
        description="ISBN-10 or ISBN-13, digits only",
        pattern=ISBN_PATTERN,
        examples=["0441013597", "9780441013593"],
    )

    copies: int = Field(
        ...,
        description="Number of copies the library holds",
        ge=0,
        le=MAX_COPIES,
    )


def to_record_view(record: BorrowRecord) -> BorrowRecordView:
    return BorrowRecordView(
        id=record.id,
        borrowed_at=record.borrowed_at,
        returned_at=record.returned_at,
    )


def to_history_view(
    records: list[BorrowRecord] | tuple[BorrowRecord, ...],
) -> list[BorrowRecordView]:
    """Map a history to views, most recent borrow first.

    Records sharing a timestamp keep the later-inserted one first.
    """
    ordered = sorted(records, key=lambda record: record.borrowed_at)
    return [to_record_view(record) for record in reversed(ordered)]
