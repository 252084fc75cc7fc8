"""
Inventory service for the library lending service.

InventoryService is the single coordination point between the Book entity
and the database. Every public operation is one unit of work:

    lock book (mutations only) -> begin -> load -> mutate entity -> commit or roll back

so the available-copies counter and the borrow-record write either both
land or neither does. Expected outcomes are raised as NotFoundError,
BookValidationError and InvalidStateError; any database failure is rolled
back and raised as InfrastructureError.

Concurrency: mutations on the same book are serialized through a per-book
lock (plus a row lock where the database supports one, and the books
version column for writers in other processes; a stale version gets one
re-read before the operation is decided). Different books never wait
on each other. Calls block on I/O; async adapters run them in a worker
thread. A caller that is cancelled while waiting cannot leave partial state
because the transaction commits or rolls back as a whole.
"""

import logging
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .config import get_config
from .database.book_repository import BookRepository
from .database.session import DatabaseManager, get_db_manager
from .errors import (
    BookValidationError,
    ConcurrentUpdateError,
    InfrastructureError,
    InvalidArgumentError,
    NotFoundError,
)
from .locking import BookLockRegistry, LockTimeoutError
from .models.book import Book
from .models.borrow_record import BorrowRecord
from .models.views import (
    BookView,
    BorrowRecordView,
    CreateBookRequest,
    to_history_view,
    to_record_view,
)
from .observability import traced

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_book_id(book_id: UUID | str) -> UUID | None:
    """Parse a book identifier; malformed identifiers resolve to None."""
    if isinstance(book_id, UUID):
        return book_id
    try:
        return UUID(str(book_id))
    except ValueError:
        return None


def _format_validation_errors(errors: list[dict[str, Any]]) -> str:
    parts = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


class InventoryService:
    """
    Orchestrates book inventory and lending operations.

    Args:
        db_manager: Database access; defaults to the global manager
        locks: Per-book lock registry; share one registry between services
            that use the same database
        lock_timeout: Seconds to wait for a busy book; defaults to config
    """

    def __init__(
        self,
        db_manager: DatabaseManager | None = None,
        locks: BookLockRegistry | None = None,
        lock_timeout: float | None = None,
    ):
        self.db = db_manager or get_db_manager()
        self.locks = locks or BookLockRegistry()
        self.lock_timeout = lock_timeout if lock_timeout is not None else get_config().lock_timeout

    # === Unit of work ===

    @contextmanager
    def _unit_of_work(
        self, operation: str, book_id: UUID | None = None
    ) -> Generator[BookRepository, None, None]:
        try:
            with self.db.session_scope() as session:
                yield BookRepository(session)
        except StaleDataError as e:
            logger.warning("Book %s changed concurrently during %s", book_id, operation)
            raise ConcurrentUpdateError(operation, book_id, "book changed concurrently") from e
        except SQLAlchemyError as e:
            logger.exception("Database error during %s (book=%s)", operation, book_id)
            raise InfrastructureError(operation, book_id) from e

    @contextmanager
    def _book_lock(self, book_id: UUID, operation: str) -> Generator[None, None, None]:
        try:
            with self.locks.hold(book_id, timeout=self.lock_timeout):
                yield
        except LockTimeoutError as e:
            logger.warning("%s timed out waiting for book %s", operation, book_id)
            raise InfrastructureError(operation, book_id, "timed out waiting for book") from e

    @staticmethod
    def _require_id(book_id: UUID | str, operation: str) -> UUID:
        parsed = parse_book_id(book_id)
        if parsed is None:
            raise NotFoundError(book_id, operation)
        return parsed

    # === Queries ===

    @traced("list_all", with_book_id=False)
    def list_all(self) -> list[BookView]:
        """All books, in insertion order."""
        with self._unit_of_work("list books") as repo:
            return repo.list_all()

    @traced("get_by_id")
    def get_by_id(self, book_id: UUID | str) -> BookView | None:
        """The book, or None if the identifier does not resolve."""
        parsed = parse_book_id(book_id)
        if parsed is None:
            return None
        with self._unit_of_work("get book", parsed) as repo:
            return repo.get(parsed)

    @traced("search", with_book_id=False)
    def search(self, query: str | None) -> list[BookView]:
        """
        Books whose title, author or ISBN contains `query`.

        Matching is case-sensitive. An empty query matches every book;
        whitespace is matched literally.
        """
        with self._unit_of_work("search books") as repo:
            return repo.search(query or "")

    @traced("borrow_history")
    def borrow_history(self, book_id: UUID | str) -> list[BorrowRecordView]:
        """
        The book's borrow records, most recent borrow first.

        Raises:
            NotFoundError: If the book does not exist
        """
        parsed = self._require_id(book_id, "borrow history")
        with self._unit_of_work("borrow history", parsed) as repo:
            book = repo.load(parsed)
            if book is None:
                raise NotFoundError(parsed, "borrow history")
            return to_history_view(book.history)

    # === Commands ===

    @traced("create", with_book_id=False)
    def create(self, request: CreateBookRequest | Mapping[str, Any]) -> UUID:
        """
        Validate and store a new book.

        Returns:
            The new book's identifier

        Raises:
            BookValidationError: If the request or the entity rules reject the data
        """
        if not isinstance(request, CreateBookRequest):
            try:
                request = CreateBookRequest.model_validate(request)
            except ValidationError as e:
                errors = e.errors(include_url=False, include_context=False, include_input=False)
                raise BookValidationError(_format_validation_errors(errors), errors) from e

        try:
            book = Book.create(
                request.title, request.author, request.year, request.isbn, request.copies
            )
        except InvalidArgumentError as e:
            raise BookValidationError(str(e), [{"loc": (), "msg": str(e)}]) from e

        with self._unit_of_work("create book", book.id) as repo:
            repo.add(book)

        logger.info("Book added: %s (%s)", book.title, book.id)
        return book.id

    @traced("borrow")
    def borrow(self, book_id: UUID | str) -> BorrowRecordView:
        """
        Lend out one copy of a book.

        If a writer outside this process changed the book after it was
        loaded, the book is re-read once and the borrow decided on the fresh
        state, so losing a race for the last copy is an InvalidStateError.

        Returns:
            The new active borrow record

        Raises:
            NotFoundError: If the book does not exist
            InvalidStateError: If no copies are available
        """
        parsed = self._require_id(book_id, "borrow")
        with self._book_lock(parsed, "borrow"):
            record, remaining = self._reload_on_conflict(
                "borrow", parsed, lambda: self._borrow_once(parsed)
            )

        logger.info("Book borrowed: %s (%d left)", parsed, remaining)
        return to_record_view(record)

    def _borrow_once(self, book_id: UUID) -> tuple[BorrowRecord, int]:
        with self._unit_of_work("borrow", book_id) as repo:
            book = repo.load(book_id, for_update=True)
            if book is None:
                raise NotFoundError(book_id, "borrow")
            record = book.borrow()
            repo.save(book)
        return record, book.available_copies

    @traced("return_book")
    def return_book(self, book_id: UUID | str) -> BorrowRecordView | None:
        """
        Take back one copy of a book.

        Like borrow(), a concurrent change from another writer causes one
        re-read before the return is decided.

        Returns:
            The sealed borrow record, or None if nothing was out

        Raises:
            NotFoundError: If the book does not exist
        """
        parsed = self._require_id(book_id, "return")
        with self._book_lock(parsed, "return"):
            record = self._reload_on_conflict("return", parsed, lambda: self._return_once(parsed))

        if record is None:
            logger.info("Return ignored, nothing borrowed: %s", parsed)
            return None

        logger.info("Book returned: %s", parsed)
        return to_record_view(record)

    def _return_once(self, book_id: UUID) -> BorrowRecord | None:
        with self._unit_of_work("return", book_id) as repo:
            book = repo.load(book_id, for_update=True)
            if book is None:
                raise NotFoundError(book_id, "return")
            record = book.return_copy()
            if record is not None:
                repo.save(book)
        return record

    @staticmethod
    def _reload_on_conflict(operation: str, book_id: UUID, attempt: Callable[[], T]) -> T:
        """Run `attempt`, and once more on fresh state if another writer won the race."""
        try:
            return attempt()
        except ConcurrentUpdateError:
            logger.info("Re-reading book %s for %s after a concurrent update", book_id, operation)
            return attempt()

    @traced("delete")
    def delete(self, book_id: UUID | str) -> None:
        """
        Remove a book and its whole borrow history.

        Raises:
            NotFoundError: If the book does not exist
        """
        parsed = self._require_id(book_id, "delete")
        with self._book_lock(parsed, "delete"):
            with self._unit_of_work("delete book", parsed) as repo:
                if not repo.delete(parsed):
                    raise NotFoundError(parsed, "delete")

        logger.info("Book deleted: %s", parsed)


_service: InventoryService | None = None


def get_inventory_service() -> InventoryService:
    """Get the global inventory service bound to the global database manager."""
    global _service  # noqa: PLW0603 - Singleton shared by all MCP handlers

    if _service is None:
        _service = InventoryService()

    return _service


def reset_inventory_service() -> None:
    """Forget the global service (useful for testing)."""
    global _service  # noqa: PLW0603

    _service = None
