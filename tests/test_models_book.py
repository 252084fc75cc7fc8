"""Tests for the Book entity and its lending state machine."""

from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from library_lending.errors import InvalidArgumentError, InvalidStateError
from library_lending.models.book import MIN_PUBLICATION_YEAR, Book
from library_lending.models.borrow_record import BorrowRecord, utc_now


def make_book(copies: int = 2) -> Book:
    return Book.create("Dune", "Frank Herbert", 1965, "9780441013593", copies)


class TestBookCreate:
    """Test Book.create validation."""

    def test_create_valid_book(self):
        book = make_book(copies=3)

        assert isinstance(book.id, UUID)
        assert book.title == "Dune"
        assert book.author == "Frank Herbert"
        assert book.year == 1965
        assert book.isbn == "9780441013593"
        assert book.available_copies == 3
        assert book.history == ()
        assert book.active_borrow_count == 0
        assert book.is_available

    def test_each_create_gets_a_fresh_id(self):
        assert make_book().id != make_book().id

    def test_zero_copies_is_allowed(self):
        book = make_book(copies=0)
        assert book.available_copies == 0
        assert not book.is_available

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_blank_title_rejected(self, title):
        with pytest.raises(InvalidArgumentError, match="Title required"):
            Book.create(title, "Frank Herbert", 1965, "9780441013593", 1)

    @pytest.mark.parametrize("author", ["", "  "])
    def test_blank_author_rejected(self, author):
        with pytest.raises(InvalidArgumentError, match="Author required"):
            Book.create("Dune", author, 1965, "9780441013593", 1)

    @pytest.mark.parametrize("year", [MIN_PUBLICATION_YEAR - 1, 0, -5])
    def test_year_before_printing_rejected(self, year):
        with pytest.raises(InvalidArgumentError, match="Invalid year"):
            Book.create("Dune", "Frank Herbert", year, "9780441013593", 1)

    def test_future_year_rejected(self):
        with pytest.raises(InvalidArgumentError, match="Invalid year"):
            Book.create("Dune", "Frank Herbert", utc_now().year + 1, "9780441013593", 1)

    def test_year_bounds_are_inclusive(self):
        assert Book.create("Old", "Anon", MIN_PUBLICATION_YEAR, "0000000000", 1).year == 1500
        current = utc_now().year
        assert Book.create("New", "Anon", current, "0000000000", 1).year == current

    def test_negative_copies_rejected(self):
        with pytest.raises(InvalidArgumentError, match="Copies cannot be negative"):
            make_book(copies=-1)

    def test_first_failing_rule_is_reported(self):
        with pytest.raises(InvalidArgumentError, match="Title required"):
            Book.create("", "", 1400, "x", -1)

    def test_invalid_argument_is_a_value_error(self):
        with pytest.raises(ValueError):
            make_book(copies=-1)


class TestBookEncapsulation:
    """Descriptive fields are frozen and state is only reachable through operations."""

    def test_title_cannot_be_reassigned(self):
        book = make_book()
        with pytest.raises(ValidationError):
            book.title = "Children of Dune"

    def test_available_copies_cannot_be_assigned(self):
        book = make_book()
        with pytest.raises((ValidationError, AttributeError)):
            book.available_copies = 100

    def test_history_is_an_immutable_snapshot(self):
        book = make_book()
        book.borrow()
        history = book.history

        book.borrow()

        assert isinstance(history, tuple)
        assert len(history) == 1
        assert len(book.history) == 2

    def test_record_from_history_cannot_change_the_book(self):
        book = make_book(copies=1)
        book.borrow()

        snapshot = book.history[0]
        snapshot._mark_returned()

        assert not snapshot.is_active
        assert book.history[0].is_active
        assert book.active_borrow_count == 1
        assert book.available_copies + book.active_borrow_count == 1

    def test_record_returned_by_borrow_is_detached(self):
        book = make_book(copies=1)
        record = book.borrow()

        record._mark_returned()

        assert book.history[0].is_active
        assert book.return_copy().id == record.id
        assert book.available_copies == 1

    def test_records_have_no_public_return_transition(self):
        assert not hasattr(BorrowRecord, "mark_returned")


class TestBorrow:
    """Test Book.borrow."""

    def test_borrow_decrements_and_records(self):
        book = make_book(copies=2)

        record = book.borrow()

        assert book.available_copies == 1
        assert book.history == (record,)
        assert record.book_id == book.id
        assert record.is_active
        assert record.returned_at is None
        assert book.active_borrow_count == 1

    def test_borrow_last_copy(self):
        book = make_book(copies=1)
        book.borrow()

        assert book.available_copies == 0
        assert not book.is_available

    def test_borrow_with_no_copies_changes_nothing(self):
        book = make_book(copies=0)

        with pytest.raises(InvalidStateError, match="No copies available to borrow") as exc_info:
            book.borrow()

        assert exc_info.value.book_id == book.id
        assert book.available_copies == 0
        assert book.history == ()

    def test_history_grows_in_borrow_order(self):
        book = make_book(copies=3)
        first = book.borrow()
        second = book.borrow()

        assert book.history == (first, second)


class TestReturnCopy:
    """Test Book.return_copy."""

    def test_return_with_nothing_borrowed_is_noop(self):
        book = make_book(copies=2)

        assert book.return_copy() is None
        assert book.available_copies == 2
        assert book.history == ()

    def test_return_seals_record_and_restores_copy(self):
        book = make_book(copies=1)
        record = book.borrow()

        returned = book.return_copy()

        assert returned.id == record.id
        assert not returned.is_active
        assert returned.returned_at >= returned.borrowed_at
        assert not book.history[0].is_active
        assert book.available_copies == 1
        assert book.active_borrow_count == 0

    def test_return_seals_most_recent_active_record(self):
        book = make_book(copies=2)
        first = book.borrow()
        second = book.borrow()

        returned = book.return_copy()

        assert returned.id == second.id
        assert book.history[0].id == first.id
        assert book.history[0].is_active
        assert not book.history[1].is_active

    def test_return_uses_given_timestamp(self):
        book = make_book(copies=1)
        book.borrow()
        when = datetime(2100, 1, 1, tzinfo=UTC)

        assert book.return_copy(when).returned_at == when

    def test_second_return_after_all_returned_is_noop(self):
        book = make_book(copies=1)
        book.borrow()
        book.return_copy()

        assert book.return_copy() is None
        assert book.available_copies == 1
        assert len(book.history) == 1

    def test_copies_plus_active_borrows_is_constant(self):
        book = make_book(copies=3)
        total = book.available_copies + book.active_borrow_count

        book.borrow()
        book.borrow()
        book.return_copy()
        book.borrow()

        assert book.available_copies + book.active_borrow_count == total


class TestFromStorage:
    """Test rebuilding persisted books."""

    def test_rebuild_with_history(self):
        book_id = uuid4()
        sealed = BorrowRecord.from_storage(
            id=uuid4(),
            book_id=book_id,
            borrowed_at=datetime(2024, 1, 1),
            returned_at=datetime(2024, 1, 5),
        )
        active = BorrowRecord.from_storage(
            id=uuid4(),
            book_id=book_id,
            borrowed_at=datetime(2024, 2, 1),
            returned_at=None,
        )

        book = Book.from_storage(
            id=book_id,
            title="Dune",
            author="Frank Herbert",
            year=1965,
            isbn="9780441013593",
            available_copies=0,
            history=[sealed, active],
        )

        assert book.available_copies == 0
        assert book.history == (sealed, active)
        assert book.active_borrow_count == 1
        assert book.return_copy().id == active.id
        assert active.is_active

    def test_rebuild_skips_creation_rules(self):
        book = Book.from_storage(
            id=uuid4(),
            title="Incunable",
            author="Anon",
            year=1450,
            isbn="0000000000",
            available_copies=1,
        )

        assert book.year == 1450
