"""Book Resources - Inventory and History Access

Exposes inventory data via read-only resources.

Resources:
- library://books/list - Every book in insertion order
- library://books/{book_id} - One book by id
- library://books/{book_id}/history - Borrow history, most recent first
"""

import asyncio
import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..errors import InfrastructureError, NotFoundError
from ..inventory import get_inventory_service

logger = logging.getLogger(__name__)


async def list_books_handler() -> list[dict[str, Any]]:
    """Returns the whole inventory."""
    logger.debug("MCP Resource Request - books/list")
    try:
        books = await asyncio.to_thread(get_inventory_service().list_all)
    except InfrastructureError as e:
        logger.exception("Error in books/list resource")
        raise ResourceError("Failed to retrieve book list") from e

    return [book.model_dump(mode="json", by_alias=True) for book in books]


async def get_book_handler(book_id: str) -> dict[str, Any]:
    """Returns details for a specific book, including available copies."""
    logger.debug("MCP Resource Request - books/%s", book_id)
    try:
        book = await asyncio.to_thread(get_inventory_service().get_by_id, book_id)
    except InfrastructureError as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError("Failed to retrieve book details") from e

    if book is None:
        raise ResourceError(f"Book not found: {book_id}")

    return book.model_dump(mode="json", by_alias=True)


async def get_book_history_handler(book_id: str) -> list[dict[str, Any]]:
    """Returns a book's borrow records, most recent borrow first."""
    logger.debug("MCP Resource Request - books/%s/history", book_id)
    try:
        history = await asyncio.to_thread(get_inventory_service().borrow_history, book_id)
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except InfrastructureError as e:
        logger.exception("Error in books/{book_id}/history resource")
        raise ResourceError("Failed to retrieve borrow history") from e

    return [record.model_dump(mode="json", by_alias=True) for record in history]


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Inventory",
        "description": "Every book in the inventory with its available copies.",
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri_template": "library://books/{book_id}",
        "name": "Book Details",
        "description": "Details and availability for one book by id.",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
    {
        "uri_template": "library://books/{book_id}/history",
        "name": "Borrow History",
        "description": "Borrow records for one book, most recent borrow first.",
        "mime_type": "application/json",
        "handler": get_book_history_handler,
    },
]
