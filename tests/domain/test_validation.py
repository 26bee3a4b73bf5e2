"""
Tests for field validation rules.
"""

import pytest

from bookswap.domain.validation import (
    is_valid_email,
    is_valid_isbn,
    is_valid_publication_year,
    is_valid_rating,
    is_valid_username,
    normalize_isbn,
    validate_registration,
)


class TestPrimitives:
    """Tests for the single-value predicates."""

    @pytest.mark.parametrize(
        "email,expected",
        [
            ("alice@example.com", True),
            ("alice.liddell+books@mail.example.org", True),
            ("alice@", False),
            ("alice.example.com", False),
            ("", False),
            (None, False),
        ],
    )
    def test_email(self, email, expected):
        assert is_valid_email(email) is expected

    @pytest.mark.parametrize(
        "username,expected",
        [
            ("alice", True),
            ("al", False),
            ("a" * 51, False),
            ("alice-l", False),
            ("alice_99", True),
        ],
    )
    def test_username(self, username, expected):
        assert is_valid_username(username) is expected

    def test_normalize_isbn(self):
        assert normalize_isbn("0-345-39180-x") == "034539180X"
        assert normalize_isbn("978 0441 013593") == "9780441013593"

    @pytest.mark.parametrize(
        "isbn,expected",
        [
            ("9780441013593", True),
            ("0-345-39180-2", True),
            ("12345", False),
            ("   ", False),
            (None, False),
        ],
    )
    def test_isbn(self, isbn, expected):
        assert is_valid_isbn(isbn) is expected

    @pytest.mark.parametrize("year,expected", [(1965, True), (999, False), (9999, False), (None, False)])
    def test_publication_year(self, year, expected):
        assert is_valid_publication_year(year) is expected

    @pytest.mark.parametrize("rating,expected", [(1, True), (5, True), (0, False), (None, False)])
    def test_rating(self, rating, expected):
        assert is_valid_rating(rating) is expected


class TestValidateRegistration:
    """Tests for validate_registration()."""

    def test_valid_form(self):
        result = validate_registration("alice", "alice@example.com", "Alice", "Liddell", "Oxford")

        assert not result.has_errors()

    def test_reports_every_invalid_field(self):
        result = validate_registration("a!", "not-an-email", "", "x" * 101, None)

        assert set(result.errors) == {"username", "email", "first_name", "last_name", "city"}
        assert result.errors["first_name"] == "First name is required"
        assert "100" in result.errors["last_name"]

    def test_missing_username_and_email(self):
        result = validate_registration("", None, "Alice", "Liddell", "Oxford")

        assert result.errors == {
            "username": "Username is required",
            "email": "Email is required",
        }
