"""
MCP tools for the library lending server.

Tools are the operations with side effects (plus search, which takes free
text input). Each entry is a dict with name, description, inputSchema and
handler, registered by the server at startup.
"""

from .inventory import borrow_book, create_book, delete_book, return_book, search_books

all_tools = [
    create_book,
    borrow_book,
    return_book,
    search_books,
    delete_book,
]

__all__ = [
    "all_tools",
    "borrow_book",
    "create_book",
    "delete_book",
    "return_book",
    "search_books",
]
