"""
Borrow record model for the library lending service.

A borrow record is one lending event for one copy of a book. It starts
active (no return timestamp) and is sealed exactly once when the copy comes
back. Records are created and sealed only by their owning Book; they hold the
book's identifier rather than a reference to the Book itself.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from storage."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class BorrowRecord(BaseModel):
    """
    A single borrow event for a book.

    The identifying fields are frozen. The return timestamp is private and
    can only move from None to a value, and only the owning Book moves it.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for the borrow record",
    )

    book_id: UUID = Field(
        ...,
        description="Identifier of the book this record belongs to",
    )

    borrowed_at: datetime = Field(
        default_factory=utc_now,
        description="When the copy was lent out (UTC)",
    )

    _returned_at: datetime | None = PrivateAttr(default=None)

    @property
    def returned_at(self) -> datetime | None:
        """When the copy came back, or None while it is still out."""
        return self._returned_at

    @property
    def is_active(self) -> bool:
        return self._returned_at is None

    def _mark_returned(self, when: datetime | None = None) -> bool:
        """
        Seal the record with a return timestamp.

        Returns:
            True if the record transitioned, False if it was already returned
        """
        if self._returned_at is not None:
            return False
        self._returned_at = when or utc_now()
        return True

    @classmethod
    def from_storage(
        cls,
        *,
        id: UUID,
        book_id: UUID,
        borrowed_at: datetime,
        returned_at: datetime | None,
    ) -> "BorrowRecord":
        """Rebuild a persisted record. Only the persistence layer calls this."""
        record = cls.model_construct(id=id, book_id=book_id, borrowed_at=as_utc(borrowed_at))
        record._returned_at = as_utc(returned_at)
        return record
