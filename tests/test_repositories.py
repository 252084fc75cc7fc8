"""Tests for BookRepository.

Each test writes through one session scope and reads back through another,
so every assertion sees committed state.
"""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from library_lending.database.book_repository import BookRepository
from library_lending.database.schema import Book as BookDB
from library_lending.models.book import Book


def add_book(db_manager, title, author, isbn, copies=1, borrows=0, returns=0) -> Book:
    book = Book.create(title, author, 1990, isbn, copies)
    for _ in range(borrows):
        book.borrow()
    for _ in range(returns):
        book.return_copy()
    with db_manager.session_scope() as session:
        BookRepository(session).add(book)
    return book


class TestBookRepositoryReads:
    def test_get_returns_view(self, db_manager):
        book = add_book(db_manager, "Dune", "Frank Herbert", "9780441013593", copies=3)

        with db_manager.session_scope() as session:
            view = BookRepository(session).get(book.id)

        assert view.id == book.id
        assert view.title == "Dune"
        assert view.available_copies == 3

    def test_get_unknown_returns_none(self, db_manager):
        with db_manager.session_scope() as session:
            assert BookRepository(session).get(uuid4()) is None

    def test_list_all_in_insertion_order(self, db_manager):
        titles = ["Zeta", "Alpha", "Mu"]
        for i, title in enumerate(titles):
            add_book(db_manager, title, "Author", f"000000000{i}")

        with db_manager.session_scope() as session:
            books = BookRepository(session).list_all()

        assert [book.title for book in books] == titles


class TestBookRepositorySearch:
    @pytest.fixture
    def catalog(self, db_manager):
        add_book(db_manager, "Dune", "Frank Herbert", "9780441013593")
        add_book(db_manager, "Foundation", "Isaac Asimov", "0553293354")
        add_book(db_manager, "100% Pure_Fiction", "Anon", "1111111111")

    def search(self, db_manager, query):
        with db_manager.session_scope() as session:
            return [book.title for book in BookRepository(session).search(query)]

    def test_empty_query_returns_everything(self, db_manager, catalog):
        assert self.search(db_manager, "") == ["Dune", "Foundation", "100% Pure_Fiction"]

    def test_match_on_title_author_and_isbn(self, db_manager, catalog):
        assert self.search(db_manager, "Found") == ["Foundation"]
        assert self.search(db_manager, "Herb") == ["Dune"]
        assert self.search(db_manager, "05532") == ["Foundation"]

    def test_search_is_case_sensitive(self, db_manager, catalog):
        assert self.search(db_manager, "dune") == []
        assert self.search(db_manager, "DUNE") == []

    def test_wildcard_characters_are_literal(self, db_manager, catalog):
        assert self.search(db_manager, "%") == ["100% Pure_Fiction"]
        assert self.search(db_manager, "_") == ["100% Pure_Fiction"]
        assert self.search(db_manager, "D_ne") == []

    def test_whitespace_is_matched_literally(self, db_manager, catalog):
        assert self.search(db_manager, " ") == ["Dune", "Foundation", "100% Pure_Fiction"]
        assert self.search(db_manager, "  ") == []
        assert self.search(db_manager, "Dune ") == []


class TestBookRepositoryAggregate:
    def test_load_rebuilds_history_in_order(self, db_manager):
        book = add_book(db_manager, "Dune", "Frank Herbert", "9780441013593", copies=3, borrows=3)
        expected = [record.id for record in book.history]

        with db_manager.session_scope() as session:
            loaded = BookRepository(session).load(book.id)

        assert [record.id for record in loaded.history] == expected
        assert loaded.available_copies == 0
        assert loaded.active_borrow_count == 3

    def test_save_appends_and_seals(self, db_manager):
        book = add_book(db_manager, "Dune", "Frank Herbert", "9780441013593", copies=2)

        with db_manager.session_scope() as session:
            repo = BookRepository(session)
            loaded = repo.load(book.id, for_update=True)
            loaded.borrow()
            loaded.borrow()
            loaded.return_copy()
            repo.save(loaded)

        with db_manager.session_scope() as session:
            reloaded = BookRepository(session).load(book.id)

        assert reloaded.available_copies == 1
        assert len(reloaded.history) == 2
        assert reloaded.history[0].is_active
        assert not reloaded.history[1].is_active

    def test_load_unknown_returns_none(self, db_manager):
        with db_manager.session_scope() as session:
            assert BookRepository(session).load(uuid4()) is None

    def test_save_requires_loaded_book(self, db_manager):
        book = Book.create("Dune", "Frank Herbert", 1965, "9780441013593", 1)

        with db_manager.session_scope() as session:
            with pytest.raises(LookupError):
                BookRepository(session).save(book)

    def test_delete_cascades_to_borrow_records(self, db_manager):
        book = add_book(
            db_manager, "Dune", "Frank Herbert", "9780441013593", copies=2, borrows=2, returns=1
        )
        with db_manager.session_scope() as session:
            assert BookRepository(session).count_records(book.id) == 2

        with db_manager.session_scope() as session:
            assert BookRepository(session).delete(book.id) is True

        with db_manager.session_scope() as session:
            repo = BookRepository(session)
            assert repo.get(book.id) is None
            assert repo.count_records(book.id) == 0

    def test_delete_unknown_returns_false(self, db_manager):
        with db_manager.session_scope() as session:
            assert BookRepository(session).delete(uuid4()) is False


class TestSchemaConstraints:
    def test_negative_available_copies_rejected(self, db_manager):
        book = add_book(db_manager, "Dune", "Frank Herbert", "9780441013593")

        with pytest.raises(IntegrityError):
            with db_manager.session_scope() as session:
                row = session.get(BookDB, str(book.id))
                row.available_copies = -1

    def test_version_increments_on_update(self, db_manager):
        book = add_book(db_manager, "Dune", "Frank Herbert", "9780441013593")
        with db_manager.session_scope() as session:
            before = session.get(BookDB, str(book.id)).version

        with db_manager.session_scope() as session:
            repo = BookRepository(session)
            loaded = repo.load(book.id)
            loaded.borrow()
            repo.save(loaded)

        with db_manager.session_scope() as session:
            assert session.get(BookDB, str(book.id)).version == before + 1
