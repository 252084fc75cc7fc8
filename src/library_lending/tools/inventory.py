"""
Inventory tools for the library lending MCP server.

Tools are the state-changing side of the MCP surface:
1. create_book: validate and add a book to the inventory
2. borrow_book: lend out one copy
3. return_book: take one copy back
4. search_books: substring search over title, author and ISBN
5. delete_book: remove a book and its borrow history

Each handler translates one InventoryService call into an MCP tool result.
Successful results carry `content` and `data`. Failed results carry
`isError`, `content` and an `outcome` naming the kind of failure:

    not_found | validation_error | invalid_state | infrastructure_error

Infrastructure failures are reported with a generic message; the detail
goes to the log only.
"""

import asyncio
import enum
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..errors import BookValidationError, InfrastructureError, InvalidStateError, NotFoundError
from ..inventory import get_inventory_service
from ..models.views import CreateBookRequest

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    """Kinds of tool failure exposed to clients."""

    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INVALID_STATE = "invalid_state"
    INFRASTRUCTURE_ERROR = "infrastructure_error"


class BookIdInput(BaseModel):
    """Input schema for tools that act on one book."""

    book_id: str = Field(
        ...,
        description="Identifier of the book",
        min_length=1,
        examples=["3f2b8c1e-4c1a-4f7e-9a43-0d2b8f3e6a11"],
    )


class SearchBooksInput(BaseModel):
    """Input schema for the search_books tool."""

    query: str = Field(
        default="",
        description="Case-sensitive text to find in title, author or ISBN; empty matches all",
        examples=["Herbert", "Dune", "978044"],
    )


def _text(message: str) -> list[dict[str, str]]:
    return [{"type": "text", "text": message}]


def _error_response(outcome: Outcome, message: str) -> dict[str, Any]:
    return {"isError": True, "outcome": outcome.value, "content": _text(message)}


async def _invoke(
    operation: str, func: Callable[..., Any], *args: Any
) -> tuple[Any, dict[str, Any] | None]:
    """
    Run a blocking service call in a worker thread.

    Returns:
        (result, None) on success, (None, error response) on a known failure
    """
    try:
        return await asyncio.to_thread(func, *args), None
    except NotFoundError as e:
        logger.info("%s failed - book not found: %s", operation, e.book_id)
        return None, _error_response(Outcome.NOT_FOUND, str(e))
    except BookValidationError as e:
        logger.info("%s failed - invalid input: %s", operation, e)
        return None, _error_response(Outcome.VALIDATION_ERROR, f"Invalid book data: {e}")
    except InvalidStateError as e:
        logger.info("%s failed - invalid state: %s", operation, e)
        return None, _error_response(Outcome.INVALID_STATE, str(e))
    except InfrastructureError:
        logger.exception("%s failed - infrastructure error", operation)
        return None, _error_response(
            Outcome.INFRASTRUCTURE_ERROR,
            f"The {operation} operation could not be completed. Please try again later.",
        )


def _parse_book_id(arguments: dict[str, Any], operation: str) -> tuple[str | None, dict | None]:
    try:
        return BookIdInput.model_validate(arguments).book_id, None
    except ValidationError as e:
        logger.warning("Invalid %s parameters: %s", operation, e)
        return None, _error_response(Outcome.VALIDATION_ERROR, f"Invalid {operation} parameters: {e}")


# =============================================================================
# HANDLERS
# =============================================================================


async def create_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the create_book tool."""
    book_id, error = await _invoke("create_book", get_inventory_service().create, arguments)
    if error:
        return error

    return {
        "content": _text(f"Created book '{arguments.get('title')}' with id {book_id}"),
        "data": {"id": str(book_id)},
    }


async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the borrow_book tool."""
    book_id, error = _parse_book_id(arguments, "borrow_book")
    if error:
        return error

    record, error = await _invoke("borrow_book", get_inventory_service().borrow, book_id)
    if error:
        return error

    return {
        "content": _text(f"Borrowed a copy of book {book_id}"),
        "data": {"record": record.model_dump(mode="json", by_alias=True)},
    }


async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the return_book tool.

    Returning a book with nothing borrowed succeeds and changes nothing;
    `data.record` is null in that case.
    """
    book_id, error = _parse_book_id(arguments, "return_book")
    if error:
        return error

    record, error = await _invoke("return_book", get_inventory_service().return_book, book_id)
    if error:
        return error

    if record is None:
        message = f"No borrowed copy of book {book_id} to return"
    else:
        message = f"Returned a copy of book {book_id}"

    return {
        "content": _text(message),
        "data": {"record": record.model_dump(mode="json", by_alias=True) if record else None},
    }


async def search_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the search_books tool."""
    try:
        params = SearchBooksInput.model_validate(arguments)
    except ValidationError as e:
        logger.warning("Invalid search parameters: %s", e)
        return _error_response(Outcome.VALIDATION_ERROR, f"Invalid search parameters: {e}")

    books, error = await _invoke("search_books", get_inventory_service().search, params.query)
    if error:
        return error

    return {
        "content": _text(f"Found {len(books)} book(s) matching '{params.query}'"),
        "data": {"books": [book.model_dump(mode="json", by_alias=True) for book in books]},
    }


async def delete_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the delete_book tool."""
    book_id, error = _parse_book_id(arguments, "delete_book")
    if error:
        return error

    _, error = await _invoke("delete_book", get_inventory_service().delete, book_id)
    if error:
        return error

    return {"content": _text(f"Deleted book {book_id} and its borrow history"), "data": None}


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

create_book = {
    "name": "create_book",
    "description": (
        "Add a book to the inventory. Requires title and author (1-200 characters), "
        "publication year (1500 to the current year), a 10 or 13 digit ISBN and the "
        "number of copies (0-10000). Returns the new book's id."
    ),
    "inputSchema": CreateBookRequest.model_json_schema(),
    "handler": create_book_handler,
}

borrow_book = {
    "name": "borrow_book",
    "description": (
        "Borrow one copy of a book. Fails with invalid_state when no copies are available."
    ),
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return one borrowed copy of a book. Succeeds without changes when nothing is borrowed."
    ),
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": return_book_handler,
}

search_books = {
    "name": "search_books",
    "description": (
        "Find books whose title, author or ISBN contains the query (case-sensitive). "
        "An empty query lists every book."
    ),
    "inputSchema": SearchBooksInput.model_json_schema(),
    "handler": search_books_handler,
}

delete_book = {
    "name": "delete_book",
    "description": "Delete a book together with its borrow history.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": delete_book_handler,
}
