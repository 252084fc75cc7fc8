"""
Error taxonomy for the library lending service.

Every failure the service reports is one of these kinds:

- InvalidArgumentError: an entity was constructed with bad values
- BookValidationError: a create request failed boundary validation
- NotFoundError: the referenced book does not exist
- InvalidStateError: the operation is not allowed in the book's current state
- InfrastructureError: persistence failed; nothing was committed
  (ConcurrentUpdateError when another writer got there first)

The first four are expected outcomes that adapters surface to the caller.
InfrastructureError is the only kind that signals a server-side fault.
"""

from typing import Any
from uuid import UUID


class LibraryError(Exception):
    """Base exception for library lending operations."""


class InvalidArgumentError(LibraryError, ValueError):
    """Raised when an entity is constructed with invalid values."""


class BookValidationError(LibraryError):
    """Raised when a create-book request fails validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(LibraryError):
    """Raised when a book identifier does not resolve to a book."""

    def __init__(self, book_id: UUID | str, operation: str | None = None):
        self.book_id = book_id
        self.operation = operation
        super().__init__(f"Book not found: {book_id}")


class InvalidStateError(LibraryError):
    """Raised when an operation is not permitted in the current state."""

    def __init__(self, message: str, book_id: UUID | str | None = None):
        super().__init__(message)
        self.book_id = book_id


class InfrastructureError(LibraryError):
    """Raised when the persistence layer fails.

    The driver exception is chained as ``__cause__``; the message
    itself names only the operation and book so it is safe to surface.
    """

    def __init__(self, operation: str, book_id: UUID | str | None = None, detail: str = ""):
        self.operation = operation
        self.book_id = book_id
        target = f" for book {book_id}" if book_id is not None else ""
        suffix = f": {detail}" if detail else ""
        super().__init__(f"Database operation '{operation}' failed{target}{suffix}")


class ConcurrentUpdateError(InfrastructureError):
    """Raised when another writer changed the book between load and commit."""
