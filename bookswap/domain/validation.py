"""
Field validation rules shared by the domain services.

Checks that need the identity store (is this username taken?) live in the
services; everything here is a pure function of its input.
"""

import re
from datetime import datetime, UTC
from typing import Optional

from .value_objects import ValidationResult

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9_+&*-]+(?:\.[a-zA-Z0-9_+&*-]+)*@(?:[a-zA-Z0-9-]+\.)+[a-zA-Z]{2,7}$"
)
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,50}$")

MAX_NAME_LENGTH = 100


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_valid_username(username: Optional[str]) -> bool:
    return bool(username) and USERNAME_PATTERN.match(username) is not None


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens, spaces and anything else that is not a digit or X."""
    return re.sub(r"[^0-9X]", "", isbn.upper())


def is_valid_isbn(isbn: Optional[str]) -> bool:
    """An ISBN is valid if it has 10 or 13 characters once normalized."""
    if not isbn or not isbn.strip():
        return False
    return len(normalize_isbn(isbn)) in (10, 13)


def is_valid_publication_year(year: Optional[int]) -> bool:
    if year is None:
        return False
    return 1000 <= year <= datetime.now(UTC).year


def is_valid_rating(rating: Optional[int]) -> bool:
    return rating is not None and 1 <= rating <= 5


def _require_text(
    result: ValidationResult,
    field_name: str,
    label: str,
    value: Optional[str],
) -> None:
    if not value or not value.strip():
        result.add_error(field_name, f"{label} is required")
    elif len(value) > MAX_NAME_LENGTH:
        result.add_error(field_name, f"{label} cannot exceed {MAX_NAME_LENGTH} characters")


def validate_registration(
    username: Optional[str],
    email: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    city: Optional[str],
) -> ValidationResult:
    """
    Validate the fields of a registration form.

    Every field is checked so that the caller can report all problems at
    once, keyed by field name.

    Returns:
        ValidationResult; has_errors() is False when the form is acceptable
    """
    result = ValidationResult()

    if not username or not username.strip():
        result.add_error("username", "Username is required")
    elif not is_valid_username(username):
        result.add_error(
            "username",
            "Username must be 3-50 characters and contain only letters, "
            "numbers, and underscores",
        )

    if not email or not email.strip():
        result.add_error("email", "Email is required")
    elif not is_valid_email(email):
        result.add_error("email", "Invalid email format")

    _require_text(result, "first_name", "First name", first_name)
    _require_text(result, "last_name", "Last name", last_name)
    _require_text(result, "city", "City", city)

    return result
