"""
Structured errors raised by the domain services.

Every error carries a machine-readable code alongside its message so that
the API layer can render it to clients without parsing text. The subclass
says which kind of failure it is; the API maps kinds to HTTP statuses.
"""

from typing import Dict, Optional


class BookSwapError(Exception):
    """Base class for all expected failures of a marketplace operation."""

    default_code = "BOOKSWAP_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFoundError(BookSwapError):
    """A referenced book, user, exchange or review does not exist."""

    default_code = "NOT_FOUND"

    @classmethod
    def book(cls, book_id: int) -> "NotFoundError":
        return cls(f"Book with ID {book_id} not found", "BOOK_NOT_FOUND")

    @classmethod
    def user(cls, username: str) -> "NotFoundError":
        return cls(f"User '{username}' not found", "USER_NOT_FOUND")

    @classmethod
    def exchange(cls, exchange_id: int) -> "NotFoundError":
        return cls(f"Exchange with ID {exchange_id} not found", "EXCHANGE_NOT_FOUND")

    @classmethod
    def review(cls, review_id: int) -> "NotFoundError":
        return cls(f"Review with ID {review_id} not found", "REVIEW_NOT_FOUND")


class ConflictError(BookSwapError):
    """The current state of a record prevents the operation."""

    default_code = "CONFLICT"

    @classmethod
    def book_not_available(cls, book_id: int) -> "ConflictError":
        return cls(
            f"Book with ID {book_id} is not available for exchange",
            "BOOK_NOT_AVAILABLE",
        )


class InvalidArgumentError(BookSwapError):
    """The request itself is malformed or not allowed for these inputs."""

    default_code = "INVALID_ARGUMENT"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        fields: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message, code)
        self.fields = dict(fields or {})

    @classmethod
    def own_book_request(cls) -> "InvalidArgumentError":
        return cls(
            "Cannot create exchange request for your own book",
            "INVALID_EXCHANGE_REQUEST",
        )


class ForbiddenError(BookSwapError):
    """The caller is not allowed to act on this record."""

    default_code = "UNAUTHORIZED_ACCESS"

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code)

    @classmethod
    def account_disabled(cls, username: str) -> "ForbiddenError":
        return cls(f"Account '{username}' is disabled", "ACCOUNT_DISABLED")


class InvalidStateError(BookSwapError):
    """A transition was attempted from a state that does not permit it."""

    default_code = "INVALID_EXCHANGE_STATUS"


class ExternalServiceError(BookSwapError):
    """A third-party API needed by the operation failed."""

    default_code = "EXTERNAL_API_ERROR"

    @classmethod
    def api(cls, api_name: str, details: str) -> "ExternalServiceError":
        return cls(f"Error calling {api_name} API: {details}")
