"""
MCP resources for the library lending server.

Resources are read-only: the inventory list, single books and borrow
history. Each entry carries a uri or uri_template plus its handler.
"""

from .books import book_resources

all_resources = [*book_resources]

__all__ = [
    "all_resources",
    "book_resources",
]
