"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the database and services
for use with FastAPI's Depends() system, plus the caller identity.

Note: We use module-level singletons instead of @lru_cache with Depends()
parameters, which is an antipattern that can cause unexpected behavior.
"""

import os
from pathlib import Path
from typing import Optional

from fastapi import Header, HTTPException, status

from bookswap.domain.ports import BookInfoProvider
from bookswap.domain.services import CatalogService, ExchangeService, ReviewService, UserService
from bookswap.infrastructure.db.sqlite_database import SqliteDatabase
from bookswap.infrastructure.external.google_books_client import GoogleBooksClient

# Configuration from environment
DB_PATH = Path(os.getenv("DB_PATH", "data/bookswap.db"))
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "5"))
GOOGLE_BOOKS_API_KEY = os.getenv("GOOGLE_BOOKS_API_KEY")

# Module-level singletons (initialized lazily)
_database: Optional[SqliteDatabase] = None
_isbn_provider: Optional[BookInfoProvider] = None
_exchange_service: Optional[ExchangeService] = None
_catalog_service: Optional[CatalogService] = None
_review_service: Optional[ReviewService] = None
_user_service: Optional[UserService] = None


def get_database() -> SqliteDatabase:
    """Provide a singleton instance of the database."""
    global _database
    if _database is None:
        _database = SqliteDatabase(DB_PATH, busy_timeout=SQLITE_BUSY_TIMEOUT)
    return _database


def get_isbn_provider() -> BookInfoProvider:
    """Provide a singleton instance of the ISBN lookup client."""
    global _isbn_provider
    if _isbn_provider is None:
        _isbn_provider = GoogleBooksClient(api_key=GOOGLE_BOOKS_API_KEY)
    return _isbn_provider


def get_exchange_service() -> ExchangeService:
    """Provide the Exchange Service wired to the database."""
    global _exchange_service
    if _exchange_service is None:
        _exchange_service = ExchangeService(get_database().unit_of_work)
    return _exchange_service


def get_catalog_service() -> CatalogService:
    """Provide the Catalog Service with the database and ISBN provider wired."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(
            get_database().unit_of_work,
            isbn_provider=get_isbn_provider(),
        )
    return _catalog_service


def get_review_service() -> ReviewService:
    global _review_service
    if _review_service is None:
        _review_service = ReviewService(get_database().unit_of_work)
    return _review_service


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        _user_service = UserService(get_database().unit_of_work)
    return _user_service


def get_current_username(
    x_user: Optional[str] = Header(default=None, alias="X-User"),
) -> str:
    """
    Identity of the caller, as resolved by the fronting authentication layer.

    Raises:
        401: Header missing or blank
    """
    if x_user is None or not x_user.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user.strip()


def reset_dependencies() -> None:
    """
    Reset all singletons. Useful for testing.

    This allows tests to point DB_PATH at a temporary file (or inject
    fakes) by resetting the module state between test cases.
    """
    global _database, _isbn_provider
    global _exchange_service, _catalog_service, _review_service, _user_service

    _database = None
    _isbn_provider = None
    _exchange_service = None
    _catalog_service = None
    _review_service = None
    _user_service = None
