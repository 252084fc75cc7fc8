"""
Library Lending Package.

Tracks a library's book inventory and the lending lifecycle of each copy.

Key Components:
- models: Book and BorrowRecord entities plus boundary views
- database: SQLAlchemy schema, sessions and the book repository
- inventory: InventoryService, the unit-of-work owner for every operation
- config: Settings with pydantic-settings
- tools / resources: the MCP surface served by server.py
"""

__version__ = "0.1.0"

from .errors import (
    BookValidationError,
    InfrastructureError,
    InvalidArgumentError,
    InvalidStateError,
    LibraryError,
    NotFoundError,
)
from .inventory import InventoryService

__all__ = [
    "BookValidationError",
    "InfrastructureError",
    "InvalidArgumentError",
    "InvalidStateError",
    "InventoryService",
    "LibraryError",
    "NotFoundError",
    "__version__",
]
