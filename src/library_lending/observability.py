"""Logfire tracing for the library lending service.

Inventory operations are wrapped in spans named `inventory.<operation>`.
configure_observability() is called once at server start; spans are only
exported when a Logfire token is configured, otherwise they stay local.
"""

import functools
import logging
import time
from collections.abc import Callable
from typing import Any

import logfire

from .config import ServerConfig
from .errors import InfrastructureError, LibraryError

logger = logging.getLogger(__name__)


class _TracingState:
    enabled: bool = True


def configure_observability(config: ServerConfig) -> None:
    """Configure logfire from server settings."""
    _TracingState.enabled = config.enable_tracing
    if not config.enable_tracing:
        logger.info("Tracing disabled")
        return

    logfire.configure(
        service_name=config.server_name,
        service_version=config.server_version,
        token=config.logfire_token,
        send_to_logfire="if-token-present",
        console=False,
    )
    logger.info("Tracing configured for %s", config.server_name)


def _outcome(error: BaseException) -> str:
    if isinstance(error, InfrastructureError):
        return "infrastructure_error"
    if isinstance(error, LibraryError):
        return type(error).__name__
    return "unexpected_error"


def traced(operation: str, *, with_book_id: bool = True):
    """Decorator to trace one inventory operation.

    With with_book_id, the book_id keyword or the first positional argument
    after self is recorded on the span.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not _TracingState.enabled:
                return func(*args, **kwargs)

            book_id = None
            if with_book_id:
                book_id = kwargs.get("book_id", args[1] if len(args) > 1 else None)
            with logfire.span(
                f"inventory.{operation}",
                operation=operation,
                book_id=str(book_id) if book_id is not None else None,
            ) as span:
                start = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("inventory.success", False)
                    span.set_attribute("inventory.outcome", _outcome(e))
                    raise
                span.set_attribute("inventory.success", True)
                span.set_attribute("inventory.duration_ms", (time.perf_counter() - start) * 1000)
                return result

        return wrapper

    return decorator
