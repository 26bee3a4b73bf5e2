"""
Domain services package.

Services orchestrate domain logic that doesn't naturally belong to a single
entity. They coordinate between entities and ports to implement use cases.

Following Hexagonal Architecture principles, services depend only on domain
entities, value objects, and port protocols (never on concrete implementations).
"""

from .catalog_service import CatalogService
from .exchange_service import ExchangeService
from .review_service import ReviewService
from .user_service import UserService

__all__ = [
    "CatalogService",
    "ExchangeService",
    "ReviewService",
    "UserService",
]
