"""
Tests for SqliteBookCatalogRepository.

Validates the SQLite implementation of the BookCatalogRepository protocol,
including CRUD operations, constraint handling, and data serialization.

Test Pattern: AAA (Arrange-Act-Assert)
- Arrange: Set up test data and preconditions
- Act: Execute the operation being tested
- Assert: Verify the expected outcomes
"""
from decimal import Decimal

import pytest

from bookswap.domain.entities import Book, BookStatus, User
from bookswap.domain.value_objects import (
    BookCondition,
    BookSearchFilters,
    ConditionGrade,
    PageRequest,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def uow(database):
    """An open writing unit of work, rolled back after the test."""
    with database.unit_of_work() as unit:
        yield unit


@pytest.fixture
def owner(uow):
    return uow.users.add(User(username="alice", email="alice@example.com", city="Madrid"))


@pytest.fixture
def sample_book(owner):
    """
    Create a sample book entity for testing.

    Returns a fully populated Book with all fields set,
    useful for testing serialization/deserialization.
    """
    return Book(
        title="El Quijote",
        owner_id=owner.id,
        authors=["Miguel de Cervantes"],
        isbn="9788424116378",
        description="Novela clásica española",
        genres=["Fiction", "Classic"],
        language="es",
        publication_year=1605,
        publisher="Juan de la Cuesta",
        page_count=1056,
        estimated_price=Decimal("12.90"),
        condition=BookCondition(
            rating=3,
            cover=ConditionGrade.FAIR,
            has_damage=True,
            damage_description="Spine creased",
            has_notes=True,
        ),
    )


# ============================================================================
# ADD / GET
# ============================================================================

class TestAddAndGet:
    """Tests for add(), get_by_id() and get_by_isbn()."""

    def test_add_assigns_id(self, uow, sample_book):
        saved = uow.books.add(sample_book)

        assert saved.id is not None

    def test_round_trip_preserves_every_field(self, uow, sample_book):
        # Arrange
        saved = uow.books.add(sample_book)

        # Act
        loaded = uow.books.get_by_id(saved.id)

        # Assert
        assert loaded.title == "El Quijote"
        assert loaded.authors == ["Miguel de Cervantes"]
        assert loaded.genres == ["Fiction", "Classic"]
        assert loaded.estimated_price == Decimal("12.90")
        assert loaded.condition == sample_book.condition
        assert loaded.exchange_status == BookStatus.AVAILABLE
        assert loaded.version == 0
        assert loaded.created_at == sample_book.created_at

    def test_get_missing_returns_none(self, uow):
        assert uow.books.get_by_id(12345) is None

    def test_get_by_isbn(self, uow, sample_book):
        saved = uow.books.add(sample_book)

        assert uow.books.get_by_isbn("9788424116378").id == saved.id
        assert uow.books.get_by_isbn("0000000000") is None

    def test_duplicate_isbn_raises_value_error(self, uow, owner, sample_book):
        uow.books.add(sample_book)
        duplicate = Book(title="Otro", owner_id=owner.id, authors=["X"], isbn="9788424116378")

        with pytest.raises(ValueError, match="Constraint violated"):
            uow.books.add(duplicate)

    def test_unknown_owner_raises_value_error(self, uow):
        with pytest.raises(ValueError):
            uow.books.add(Book(title="Orphan", owner_id=999, authors=["X"]))


# ============================================================================
# UPDATE / SET_STATUS / DELETE
# ============================================================================

class TestUpdate:
    """Tests for update()."""

    def test_update_does_not_touch_availability(self, uow, sample_book):
        # Arrange
        saved = uow.books.add(sample_book)
        uow.books.set_status(saved.id, BookStatus.RESERVED)

        # Act: stale copy still says AVAILABLE
        saved.title = "Don Quijote"
        uow.books.update(saved)

        # Assert
        loaded = uow.books.get_by_id(saved.id)
        assert loaded.title == "Don Quijote"
        assert loaded.exchange_status == BookStatus.RESERVED
        assert loaded.version == 1


class TestSetStatus:
    """Tests for set_status()."""

    def test_unconditional_change_bumps_version(self, uow, sample_book):
        saved = uow.books.add(sample_book)

        assert uow.books.set_status(saved.id, BookStatus.NOT_AVAILABLE) is True

        loaded = uow.books.get_by_id(saved.id)
        assert loaded.exchange_status == BookStatus.NOT_AVAILABLE
        assert loaded.version == 1

    def test_compare_and_set_succeeds_when_expected_matches(self, uow, sample_book):
        saved = uow.books.add(sample_book)

        changed = uow.books.set_status(saved.id, BookStatus.RESERVED, expected=BookStatus.AVAILABLE)

        assert changed is True
        assert uow.books.get_by_id(saved.id).exchange_status == BookStatus.RESERVED

    def test_compare_and_set_fails_on_mismatch(self, uow, sample_book):
        # Arrange
        saved = uow.books.add(sample_book)
        uow.books.set_status(saved.id, BookStatus.RESERVED)

        # Act
        changed = uow.books.set_status(saved.id, BookStatus.RESERVED, expected=BookStatus.AVAILABLE)

        # Assert
        assert changed is False
        assert uow.books.get_by_id(saved.id).version == 1

    def test_expected_accepts_several_statuses(self, uow, sample_book):
        saved = uow.books.add(sample_book)
        uow.books.set_status(saved.id, BookStatus.NOT_AVAILABLE)

        changed = uow.books.set_status(
            saved.id,
            BookStatus.AVAILABLE,
            expected=(BookStatus.AVAILABLE, BookStatus.NOT_AVAILABLE),
        )

        assert changed is True

    def test_missing_book(self, uow):
        assert uow.books.set_status(404, BookStatus.AVAILABLE) is False


class TestDelete:
    """Tests for delete()."""

    def test_delete_existing(self, uow, sample_book):
        saved = uow.books.add(sample_book)

        assert uow.books.delete(saved.id) is True
        assert uow.books.get_by_id(saved.id) is None

    def test_delete_missing(self, uow):
        assert uow.books.delete(404) is False


# ============================================================================
# SEARCH
# ============================================================================

class TestSearch:
    """Tests for search() and count_by_status()."""

    @pytest.fixture
    def catalog(self, uow, owner):
        other = uow.users.add(User(username="bob", email="bob@example.com"))

        def add(title, owner_id, **fields):
            return uow.books.add(Book(title=title, owner_id=owner_id, **fields))

        return {
            "dune": add("Dune", owner.id, authors=["Frank Herbert"], genres=["Science Fiction"],
                        language="en", publication_year=1965, estimated_price=Decimal("9.99")),
            "hobbit": add("The Hobbit", other.id, authors=["J.R.R. Tolkien"], genres=["Fantasy"],
                          language="en", publication_year=1937, estimated_price=Decimal("15")),
            "quijote": add("don quijote", other.id, authors=["Miguel de Cervantes"],
                           genres=["Classic"], language="es", publication_year=1605,
                           estimated_price=Decimal("2.5")),
            "percent": add("100% Hits", owner.id, authors=["Various"], language="en",
                           exchange_status=BookStatus.NOT_AVAILABLE),
            "other": other,
        }

    def test_title_is_case_insensitive_substring(self, uow, catalog):
        page = uow.books.search(BookSearchFilters(title="HOB"), PageRequest())

        assert [b.id for b in page.items] == [catalog["hobbit"].id]

    def test_like_wildcards_are_literal(self, uow, catalog):
        page = uow.books.search(
            BookSearchFilters(title="%", exchange_status=None), PageRequest()
        )

        assert [b.id for b in page.items] == [catalog["percent"].id]

    def test_author_matches_any_author(self, uow, catalog):
        page = uow.books.search(BookSearchFilters(author="tolk"), PageRequest())

        assert [b.id for b in page.items] == [catalog["hobbit"].id]

    def test_genre_is_exact_and_case_insensitive(self, uow, catalog):
        assert uow.books.search(BookSearchFilters(genre="fantasy"), PageRequest()).total == 1
        assert uow.books.search(BookSearchFilters(genre="fant"), PageRequest()).total == 0

    def test_exclude_owner(self, uow, catalog, owner):
        page = uow.books.search(BookSearchFilters(exclude_owner_id=owner.id), PageRequest())

        assert {b.owner_id for b in page.items} == {catalog["other"].id}

    def test_status_filter_none_matches_everything(self, uow, catalog):
        assert uow.books.search(BookSearchFilters(), PageRequest()).total == 3
        assert uow.books.search(BookSearchFilters(exchange_status=None), PageRequest()).total == 4

    def test_sort_by_title_ignores_case(self, uow, catalog):
        page = uow.books.search(BookSearchFilters(), PageRequest(sort_by="title", direction="asc"))

        assert [b.title for b in page.items] == ["don quijote", "Dune", "The Hobbit"]

    def test_sort_by_price_is_numeric(self, uow, catalog):
        page = uow.books.search(
            BookSearchFilters(), PageRequest(sort_by="estimated_price", direction="desc")
        )

        assert [b.title for b in page.items] == ["The Hobbit", "Dune", "don quijote"]

    def test_pagination(self, uow, catalog):
        page = uow.books.search(
            BookSearchFilters(), PageRequest(page=1, size=2, sort_by="publication_year", direction="asc")
        )

        assert [b.title for b in page.items] == ["Dune"]
        assert page.total == 3
        assert page.total_pages == 2

    def test_price_range_is_inclusive(self, uow, catalog):
        page = uow.books.search(
            BookSearchFilters(min_price=Decimal("9.99"), max_price=Decimal("15")), PageRequest()
        )

        assert {b.id for b in page.items} == {catalog["dune"].id, catalog["hobbit"].id}

    def test_min_price_compares_numerically(self, uow, catalog):
        page = uow.books.search(BookSearchFilters(min_price=Decimal("3")), PageRequest())

        assert catalog["quijote"].id not in {b.id for b in page.items}
        assert page.total == 2

    def test_price_filter_skips_unpriced_books(self, uow, catalog):
        page = uow.books.search(
            BookSearchFilters(max_price=Decimal("100"), exchange_status=None), PageRequest()
        )

        assert catalog["percent"].id not in {b.id for b in page.items}
        assert page.total == 3

    def test_count_by_status_lists_every_status(self, uow, catalog):
        counts = uow.books.count_by_status()

        assert counts == {
            BookStatus.AVAILABLE: 3,
            BookStatus.RESERVED: 0,
            BookStatus.EXCHANGED: 0,
            BookStatus.NOT_AVAILABLE: 1,
        }
