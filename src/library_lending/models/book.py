"""
Book model for the library lending service.

This model is the aggregate root of the lending state machine. A Book owns
its ordered borrow history and the available-copies counter, and every change
to either goes through borrow() or return_copy():

- borrow(): takes one copy and appends an active BorrowRecord
- return_copy(): seals the most recent active record and puts the copy back

Descriptive fields (title, author, year, ISBN) are frozen after creation.
The counter and history are private attributes exposed read-only, so code
outside this module cannot build a half-valid Book or flip a field directly.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from ..errors import InvalidArgumentError, InvalidStateError
from .borrow_record import BorrowRecord, utc_now

MIN_PUBLICATION_YEAR = 1500


def _first_error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    cause = error.get("ctx", {}).get("error")
    if cause is not None:
        return str(cause)
    field = ".".join(str(part) for part in error["loc"])
    return f"{field}: {error['msg']}"


class Book(BaseModel):
    """
    Represents a book in the library inventory.

    Use Book.create() to build a new book; it validates every field and
    reports failures as InvalidArgumentError. The ISBN is stored verbatim;
    its format is checked at the request boundary.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for the book",
    )

    title: str = Field(
        ...,
        description="The title of the book",
        examples=["The Pragmatic Programmer", "Dune"],
    )

    author: str = Field(
        ...,
        description="The book's author",
        examples=["Frank Herbert"],
    )

    year: int = Field(
        ...,
        description="Year the book was published",
        examples=[1965, 1999],
    )

    isbn: str = Field(
        ...,
        description="ISBN as supplied at creation",
        examples=["0441013597", "9780441013593"],
    )

    _available_copies: int = PrivateAttr(default=0)
    _borrow_history: list[BorrowRecord] = PrivateAttr(default_factory=list)

    @field_validator("title")
    @classmethod
    def require_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title required")
        return v

    @field_validator("author")
    @classmethod
    def require_author(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Author required")
        return v

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int) -> int:
        """Publication year must fall between 1500 and the current year."""
        if v < MIN_PUBLICATION_YEAR or v > utc_now().year:
            raise ValueError("Invalid year")
        return v

    @classmethod
    def create(cls, title: str, author: str, year: int, isbn: str, copies: int) -> "Book":
        """
        Create a new book with `copies` copies available and no history.

        Raises:
            InvalidArgumentError: If title or author is blank, the year is out
                of range, or copies is negative
        """
        try:
            book = cls(title=title, author=author, year=year, isbn=isbn)
        except ValidationError as e:
            raise InvalidArgumentError(_first_error_message(e)) from e

        if copies < 0:
            raise InvalidArgumentError("Copies cannot be negative")

        book._available_copies = copies
        return book

    @classmethod
    def from_storage(
        cls,
        *,
        id: UUID,
        title: str,
        author: str,
        year: int,
        isbn: str,
        available_copies: int,
        history: Iterable[BorrowRecord] = (),
    ) -> "Book":
        """
        Rebuild a persisted book and its history.

        Only the persistence layer calls this. Field rules are not re-run:
        the year bound applies at creation time, not on every load.
        """
        book = cls.model_construct(id=id, title=title, author=author, year=year, isbn=isbn)
        book._available_copies = available_copies
        book._borrow_history = [record.model_copy() for record in history]
        return book

    @property
    def available_copies(self) -> int:
        return self._available_copies

    @property
    def history(self) -> tuple[BorrowRecord, ...]:
        """
        Snapshots of the borrow records in insertion order, oldest borrow first.

        Snapshots are detached: changing one never changes this book.
        """
        return tuple(record.model_copy() for record in self._borrow_history)

    @property
    def active_borrow_count(self) -> int:
        return sum(1 for record in self._borrow_history if record.is_active)

    @property
    def is_available(self) -> bool:
        return self._available_copies > 0

    def borrow(self) -> BorrowRecord:
        """
        Lend out one copy.

        Returns:
            A snapshot of the new active borrow record

        Raises:
            InvalidStateError: If no copies are available. Nothing changes.
        """
        if self._available_copies <= 0:
            raise InvalidStateError("No copies available to borrow", book_id=self.id)

        record = BorrowRecord(book_id=self.id)
        self._available_copies -= 1
        self._borrow_history.append(record)
        return record.model_copy()

    def return_copy(self, when: datetime | None = None) -> BorrowRecord | None:
        """
        Take back one copy.

        The most recently borrowed active record is sealed. With nothing
        active this is a no-op and returns None.
        """
        active = next(
            (record for record in reversed(self._borrow_history) if record.is_active),
            None,
        )
        if active is None:
            return None

        active._mark_returned(when)  # noqa: SLF001 - records are sealed only by their Book
        self._available_copies += 1
        return active.model_copy()
