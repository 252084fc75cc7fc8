"""
Per-book locks.

Borrow, return and delete on the same book must not interleave their
read-modify-write. Each book id maps to its own lock, so operations on
different books never wait on each other. Locks are created on demand and
dropped when no caller holds or waits for them.
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from uuid import UUID


class LockTimeoutError(TimeoutError):
    """Raised when a book lock is not acquired in time."""


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class BookLockRegistry:
    """Registry of one lock per book identifier."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, book_id: UUID, timeout: float | None = None) -> Generator[None, None, None]:
        """
        Hold the lock for `book_id` for the duration of the block.

        Raises:
            LockTimeoutError: If the lock was not acquired within `timeout` seconds
        """
        with self._guard:
            entry = self._entries.get(book_id)
            if entry is None:
                entry = self._entries[book_id] = _Entry()
            entry.users += 1

        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise LockTimeoutError(f"Timed out waiting for book {book_id}")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[book_id]
