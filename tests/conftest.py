"""
Shared fixtures: a fresh SQLite database per test plus factories that seed
users and books directly through the repositories, and an API client
wired to a temporary database.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest
from fastapi.testclient import TestClient

from bookswap.api.v1 import dependencies
from bookswap.domain.entities import Book, BookStatus, Role, User
from bookswap.infrastructure.db.sqlite_database import SqliteDatabase
from bookswap.main import create_app


class SteppingClock:
    """Deterministic clock: every call returns a time one second later."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self._now = start
        self.calls: List[datetime] = []

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        self.calls.append(self._now)
        return self._now


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def database(tmp_path) -> SqliteDatabase:
    """
    Create a database in a temporary directory for each test.

    Uses pytest's tmp_path fixture to ensure isolation between tests.
    """
    return SqliteDatabase(tmp_path / "test_bookswap.db", busy_timeout=5.0)


@pytest.fixture
def uow_factory(database):
    return database.unit_of_work


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def make_user(database) -> Callable[..., User]:
    """Factory inserting a user; email is derived from the username."""

    def _make_user(username: str, role: Role = Role.USER, **fields) -> User:
        user = User(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            first_name=fields.pop("first_name", username.capitalize()),
            last_name=fields.pop("last_name", "Reader"),
            city=fields.pop("city", "Madrid"),
            role=role,
            **fields,
        )
        with database.unit_of_work() as uow:
            saved = uow.users.add(user)
            uow.commit()
        return saved

    return _make_user


@pytest.fixture
def make_book(database) -> Callable[..., Book]:
    """Factory inserting a book owned by the given user."""

    def _make_book(
        owner: User,
        title: str = "Dune",
        status: BookStatus = BookStatus.AVAILABLE,
        **fields,
    ) -> Book:
        book = Book(
            title=title,
            owner_id=owner.id,
            authors=fields.pop("authors", ["Frank Herbert"]),
            exchange_status=status,
            **fields,
        )
        with database.unit_of_work() as uow:
            saved = uow.books.add(book)
            uow.commit()
        return saved

    return _make_book


@pytest.fixture
def alice(make_user) -> User:
    """Book owner in most scenarios."""
    return make_user("alice")


@pytest.fixture
def bob(make_user) -> User:
    """Requester in most scenarios."""
    return make_user("bob")


@pytest.fixture
def carol(make_user) -> User:
    """Uninvolved third party."""
    return make_user("carol")


@pytest.fixture
def book(make_book, alice) -> Book:
    """An AVAILABLE book owned by alice."""
    return make_book(alice, title="Dune", genres=["Science Fiction"], publication_year=1965)


# ============================================================================
# API FIXTURES
# ============================================================================

@pytest.fixture
def app(tmp_path, monkeypatch):
    """FastAPI app whose singletons point at a temporary database."""
    monkeypatch.setattr(dependencies, "DB_PATH", tmp_path / "api_bookswap.db")
    dependencies.reset_dependencies()
    application = create_app()
    yield application
    application.dependency_overrides.clear()
    dependencies.reset_dependencies()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_user(client):
    """Register a member through the API; returns the X-User headers for them."""

    def _register(username: str, **fields) -> dict:
        body = {
            "username": username,
            "email": f"{username}@example.com",
            "first_name": username.capitalize(),
            "last_name": "Reader",
            "city": "Madrid",
            **fields,
        }
        response = client.post("/api/v1/users", json=body)
        assert response.status_code == 201, response.text
        return {"X-User": username}

    return _register


@pytest.fixture
def api_book(client):
    """List a book through the API as `headers`' user; returns its JSON."""

    def _list(headers: dict, title: str = "Dune", **fields) -> dict:
        body = {"title": title, "authors": fields.pop("authors", ["Frank Herbert"]), **fields}
        response = client.post("/api/v1/books", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _list
