"""
Tests for domain entities.
"""

import pytest
from decimal import Decimal

from bookswap.domain.entities import (
    EXCHANGE_TRANSITIONS,
    Book,
    BookStatus,
    Exchange,
    ExchangeStatus,
    Review,
    Role,
    User,
)


class TestUser:
    """Tests for the User entity."""

    def test_create_user_with_minimum_data(self):
        """Test creating a user with only required fields."""
        user = User(username="alice", email="alice@example.com")

        assert user.username == "alice"
        assert user.role == Role.USER
        assert user.enabled is True
        assert user.id is None

    def test_user_validation_empty_username(self):
        with pytest.raises(ValueError, match="username cannot be empty"):
            User(username="  ", email="alice@example.com")

    def test_user_validation_invalid_email(self):
        with pytest.raises(ValueError, match="valid address"):
            User(username="alice", email="alice.example.com")

    def test_full_name(self):
        user = User(username="alice", email="a@example.com", first_name="Alice", last_name="Liddell")

        assert user.get_full_name() == "Alice Liddell"

    @pytest.mark.parametrize(
        "role,expected",
        [(Role.USER, False), (Role.MODERATOR, True), (Role.ADMIN, True)],
    )
    def test_is_moderator(self, role, expected):
        user = User(username="alice", email="a@example.com", role=role)

        assert user.is_moderator() is expected

    def test_user_equality(self):
        """Test that users with same ID are equal."""
        first = User(username="alice", email="a@example.com", id=1)
        second = User(username="alice2", email="b@example.com", id=1)

        assert first == second
        assert hash(first) == hash(second)

    def test_unsaved_users_are_only_equal_to_themselves(self):
        first = User(username="alice", email="a@example.com")
        second = User(username="alice", email="a@example.com")

        assert first == first
        assert first != second


class TestBook:
    """Tests for the Book entity."""

    def test_create_book_with_minimum_data(self):
        book = Book(title="Dune", owner_id=1, authors=["Frank Herbert"])

        assert book.exchange_status == BookStatus.AVAILABLE
        assert book.version == 0
        assert book.genres == []
        assert book.condition is None
        assert book.is_available()

    def test_book_validation_empty_title(self):
        with pytest.raises(ValueError, match="title cannot be empty"):
            Book(title="", owner_id=1, authors=["Author"])

    def test_book_validation_title_too_long(self):
        with pytest.raises(ValueError, match="255"):
            Book(title="x" * 256, owner_id=1, authors=["Author"])

    def test_book_validation_no_authors(self):
        with pytest.raises(ValueError, match="at least one author"):
            Book(title="Book Title", owner_id=1, authors=[])

    def test_book_validation_page_count(self):
        with pytest.raises(ValueError, match="page_count"):
            Book(title="Book Title", owner_id=1, authors=["Author"], page_count=0)

    def test_book_validation_negative_price(self):
        with pytest.raises(ValueError, match="estimated_price"):
            Book(title="Book Title", owner_id=1, authors=["Author"], estimated_price=Decimal("-1"))

    def test_is_owned_by(self):
        owner = User(username="alice", email="a@example.com", id=1)
        other = User(username="bob", email="b@example.com", id=2)
        book = Book(title="Dune", owner_id=1, authors=["Frank Herbert"])

        assert book.is_owned_by(owner)
        assert not book.is_owned_by(other)

    def test_unsaved_user_owns_nothing(self):
        book = Book(title="Dune", owner_id=1, authors=["Frank Herbert"])

        assert not book.is_owned_by(User(username="alice", email="a@example.com"))


class TestExchangeStatus:
    """Tests for the exchange state machine table."""

    @pytest.mark.parametrize(
        "status",
        [ExchangeStatus.REJECTED, ExchangeStatus.COMPLETED, ExchangeStatus.CANCELLED],
    )
    def test_terminal_statuses_have_no_transitions(self, status):
        assert EXCHANGE_TRANSITIONS[status] == frozenset()

    def test_every_status_has_an_entry(self):
        assert set(EXCHANGE_TRANSITIONS) == set(ExchangeStatus)

    def test_complete_only_from_accepted(self):
        sources = [s for s, targets in EXCHANGE_TRANSITIONS.items() if ExchangeStatus.COMPLETED in targets]

        assert sources == [ExchangeStatus.ACCEPTED]


class TestExchange:
    """Tests for the Exchange entity."""

    def test_create_exchange_defaults(self):
        exchange = Exchange(book_id=1, owner_id=1, requester_id=2)

        assert exchange.status == ExchangeStatus.PENDING
        assert exchange.completed is False
        assert exchange.can_be_accepted()
        assert exchange.can_be_rejected()
        assert exchange.can_be_cancelled()
        assert not exchange.can_be_completed()

    def test_requester_must_differ_from_owner(self):
        with pytest.raises(ValueError, match="requester must differ"):
            Exchange(book_id=1, owner_id=1, requester_id=1)

    def test_completed_flag_must_match_status(self):
        with pytest.raises(ValueError, match="completed flag"):
            Exchange(book_id=1, owner_id=1, requester_id=2, completed=True)

        with pytest.raises(ValueError, match="completed flag"):
            Exchange(book_id=1, owner_id=1, requester_id=2, status=ExchangeStatus.COMPLETED)

    def test_message_too_long(self):
        with pytest.raises(ValueError, match="message cannot exceed"):
            Exchange(book_id=1, owner_id=1, requester_id=2, message="m" * 1001)

    def test_accepted_exchange_can_be_completed(self):
        exchange = Exchange(book_id=1, owner_id=1, requester_id=2, status=ExchangeStatus.ACCEPTED)

        assert exchange.can_be_completed()
        assert not exchange.can_be_accepted()

    def test_completed_exchange_is_final(self):
        exchange = Exchange(
            book_id=1, owner_id=1, requester_id=2, status=ExchangeStatus.COMPLETED, completed=True
        )

        assert not exchange.can_be_rejected()
        assert not exchange.can_be_cancelled()

    def test_involves(self):
        exchange = Exchange(book_id=1, owner_id=1, requester_id=2)

        assert exchange.involves(User(username="alice", email="a@example.com", id=1))
        assert exchange.involves(User(username="bob", email="b@example.com", id=2))
        assert not exchange.involves(User(username="carol", email="c@example.com", id=3))


class TestReview:
    """Tests for the Review entity."""

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValueError, match="rating must be between 1 and 5"):
            Review(book_id=1, user_id=1, rating=rating)

    def test_content_too_long(self):
        with pytest.raises(ValueError, match="2000"):
            Review(book_id=1, user_id=1, rating=3, content="c" * 2001)

    def test_new_review_is_not_approved(self):
        assert Review(book_id=1, user_id=1, rating=4).approved is False

    def test_star_rating(self):
        assert Review(book_id=1, user_id=1, rating=3).get_star_rating() == "★★★☆☆"
