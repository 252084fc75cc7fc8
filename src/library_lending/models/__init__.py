"""
Library lending models.

- Book: inventory entity and owner of the lending state machine
- BorrowRecord: one borrow event, active until sealed by a return
- BookView, BorrowRecordView, CreateBookRequest: boundary shapes for adapters
"""

from .book import MIN_PUBLICATION_YEAR, Book
from .borrow_record import BorrowRecord
from .views import (
    BookView,
    BorrowRecordView,
    CreateBookRequest,
    to_history_view,
    to_record_view,
)

__all__ = [
    "MIN_PUBLICATION_YEAR",
    "Book",
    "BookView",
    "BorrowRecord",
    "BorrowRecordView",
    "CreateBookRequest",
    "to_history_view",
    "to_record_view",
]
