"""
Database package for the library lending service.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- The Book aggregate repository (book_repository.py)
- A Faker-based seeding command (seed.py)
"""

from .book_repository import BookRepository
from .schema import Base
from .schema import Book as BookDB
from .schema import BorrowRecord as BorrowRecordDB
from .session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_query,
)

__all__ = [
    "Base",
    "BookDB",
    "BookRepository",
    "BorrowRecordDB",
    "DatabaseManager",
    "get_db_manager",
    "reset_db_manager",
    "safe_query",
]
