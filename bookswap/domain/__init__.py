"""
Domain layer - Core business logic and entities.

This layer contains the business entities, value objects, and defines
the ports (interfaces) that the infrastructure layer must implement.

It has NO dependencies on external frameworks, databases, or APIs.
"""

from .entities import (
    Book,
    BookStatus,
    Exchange,
    ExchangeStatus,
    ExchangeType,
    Review,
    Role,
    User,
)
from .value_objects import (
    BookCondition,
    BookInfo,
    BookSearchFilters,
    Page,
    PageRequest,
    RatingStats,
    ValidationResult,
)

__all__ = [
    # Entities
    "Book",
    "Exchange",
    "Review",
    "User",
    # Enums
    "BookStatus",
    "ExchangeStatus",
    "ExchangeType",
    "Role",
    # Value Objects
    "BookCondition",
    "BookInfo",
    "BookSearchFilters",
    "Page",
    "PageRequest",
    "RatingStats",
    "ValidationResult",
]
