"""
Tests for the book catalog endpoints.
"""

from typing import Optional

import pytest

from bookswap.api.v1.dependencies import get_catalog_service, get_database
from bookswap.domain.services import CatalogService
from bookswap.domain.value_objects import BookInfo

BASE = "/api/v1/books"


class FakeIsbnProvider:
    def __init__(self, books=None, error: Optional[Exception] = None):
        self._books = books or {}
        self._error = error

    def lookup_isbn(self, isbn: str) -> Optional[BookInfo]:
        if self._error is not None:
            raise self._error
        return self._books.get(isbn)

    def get_source_name(self) -> str:
        return "Fake Books"


@pytest.fixture
def alice(api_user):
    return api_user("alice")


@pytest.fixture
def bob(api_user):
    return api_user("bob")


@pytest.fixture
def use_provider(app):
    """Swap the catalog service for one using the given ISBN provider."""

    def _use(provider):
        service = CatalogService(get_database().unit_of_work, isbn_provider=provider)
        app.dependency_overrides[get_catalog_service] = lambda: service

    return _use


class TestCreateAndGet:
    """POST /books and GET /books/{id}"""

    def test_create_book(self, client, alice):
        response = client.post(BASE, json={
            "title": "Dune",
            "authors": ["Frank Herbert"],
            "isbn": "978-0441013593",
            "estimated_price": "8.50",
            "condition": {"rating": 4, "cover": "GOOD"},
        }, headers=alice)

        assert response.status_code == 201
        body = response.json()
        assert body["isbn"] == "9780441013593"
        assert body["exchange_status"] == "AVAILABLE"
        assert body["condition"]["cover"] == "GOOD"

        fetched = client.get(f"{BASE}/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Dune"

    def test_missing_fields_are_validation_errors(self, client, alice):
        response = client.post(BASE, json={"authors": ["Nobody"]}, headers=alice)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert "title" in body["fields"]

    def test_bad_isbn(self, client, alice):
        response = client.post(BASE, json={"title": "X", "authors": ["Y"], "isbn": "123"}, headers=alice)

        assert response.status_code == 400
        assert response.json()["fields"] == {"isbn": "Invalid ISBN format"}

    def test_duplicate_isbn(self, client, alice, bob, api_book):
        api_book(alice, isbn="9780441013593")

        response = client.post(
            BASE, json={"title": "Dune", "authors": ["F. H."], "isbn": "9780441013593"}, headers=bob
        )

        assert response.status_code == 409
        assert response.json()["error"] == "ISBN_TAKEN"

    def test_unknown_book(self, client):
        response = client.get(f"{BASE}/31337")

        assert response.status_code == 404
        assert response.json()["error"] == "BOOK_NOT_FOUND"


class TestOwnerActions:
    """PUT /books/{id}, DELETE /books/{id}, PUT /books/{id}/availability"""

    def test_update(self, client, alice, api_book):
        book = api_book(alice)

        response = client.put(f"{BASE}/{book['id']}", json={"page_count": 412}, headers=alice)

        assert response.status_code == 200
        assert response.json()["page_count"] == 412
        assert response.json()["title"] == "Dune"

    def test_update_by_other_user(self, client, alice, bob, api_book):
        book = api_book(alice)

        response = client.put(f"{BASE}/{book['id']}", json={"title": "Mine"}, headers=bob)

        assert response.status_code == 403

    def test_delete(self, client, alice, api_book):
        book = api_book(alice)

        response = client.delete(f"{BASE}/{book['id']}", headers=alice)

        assert response.status_code == 204
        assert client.get(f"{BASE}/{book['id']}").status_code == 404

    def test_delete_book_with_exchange(self, client, alice, bob, api_book):
        book = api_book(alice)
        client.post("/api/v1/exchanges", json={"book_id": book["id"]}, headers=bob)

        response = client.delete(f"{BASE}/{book['id']}", headers=alice)

        assert response.status_code == 409
        assert response.json()["error"] == "BOOK_HAS_EXCHANGES"

    def test_toggle_availability(self, client, alice, api_book):
        book = api_book(alice)

        response = client.put(
            f"{BASE}/{book['id']}/availability", json={"status": "NOT_AVAILABLE"}, headers=alice
        )

        assert response.status_code == 200
        assert response.json()["exchange_status"] == "NOT_AVAILABLE"

    def test_cannot_set_reserved(self, client, alice, api_book):
        book = api_book(alice)

        response = client.put(
            f"{BASE}/{book['id']}/availability", json={"status": "RESERVED"}, headers=alice
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_BOOK_STATUS"


class TestSearch:
    """GET /books, /books/available, /books/stats"""

    @pytest.fixture
    def shelf(self, alice, bob, api_book):
        api_book(alice, title="Dune", genres=["Science Fiction"], publication_year=1965)
        api_book(alice, title="Emma", authors=["Jane Austen"], genres=["Classics"])
        hobbit = api_book(bob, title="The Hobbit", authors=["J.R.R. Tolkien"], genres=["Fantasy"])
        return hobbit

    def test_filter_by_genre(self, client, shelf):
        response = client.get(BASE, params={"genre": "fantasy"})

        assert response.status_code == 200
        assert [b["title"] for b in response.json()["items"]] == ["The Hobbit"]

    def test_sorted_by_title(self, client, shelf):
        response = client.get(BASE, params={"sort_by": "title", "direction": "asc"})

        assert [b["title"] for b in response.json()["items"]] == ["Dune", "Emma", "The Hobbit"]

    def test_any_status_includes_withdrawn(self, client, bob, shelf):
        client.put(f"{BASE}/{shelf['id']}/availability", json={"status": "NOT_AVAILABLE"}, headers=bob)

        default = client.get(BASE).json()
        everything = client.get(BASE, params={"any_status": True}).json()

        assert default["total"] == 2
        assert everything["total"] == 3

    def test_invalid_year_range(self, client, shelf):
        response = client.get(BASE, params={"min_year": 2000, "max_year": 1900})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_filter_by_price_range(self, client, alice, api_book):
        api_book(alice, title="Cheap", estimated_price="3.00")
        api_book(alice, title="Fair", estimated_price="12.00")
        api_book(alice, title="Dear", estimated_price="40")

        response = client.get(BASE, params={"min_price": "5", "max_price": "20"})

        assert response.status_code == 200
        assert [b["title"] for b in response.json()["items"]] == ["Fair"]

    def test_inverted_price_range(self, client):
        response = client.get(BASE, params={"min_price": "20", "max_price": "5"})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_unknown_sort_field(self, client, shelf):
        response = client.get(BASE, params={"sort_by": "owner"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PAGE_REQUEST"

    def test_available_for_caller(self, client, bob, shelf):
        response = client.get(f"{BASE}/available", headers=bob)

        assert {b["title"] for b in response.json()["items"]} == {"Dune", "Emma"}

    def test_stats(self, client, shelf):
        response = client.get(f"{BASE}/stats")

        body = response.json()
        assert body["counts"]["AVAILABLE"] == 3
        assert body["counts"]["EXCHANGED"] == 0
        assert body["total"] == 3


class TestLookup:
    """GET /books/lookup"""

    def test_found(self, client, use_provider):
        use_provider(FakeIsbnProvider({"9780441013593": BookInfo(
            isbn="9780441013593",
            title="Dune",
            authors=["Frank Herbert"],
            published_date="1990-09-01",
        )}))

        response = client.get(f"{BASE}/lookup", params={"isbn": "978-0441013593"})

        assert response.status_code == 200
        assert response.json()["title"] == "Dune"
        assert response.json()["publication_year"] == 1990

    def test_not_found(self, client, use_provider):
        use_provider(FakeIsbnProvider())

        response = client.get(f"{BASE}/lookup", params={"isbn": "9780441013593"})

        assert response.status_code == 404

    def test_provider_down(self, client, use_provider):
        use_provider(FakeIsbnProvider(error=RuntimeError("Google Books API request failed: 503")))

        response = client.get(f"{BASE}/lookup", params={"isbn": "9780441013593"})

        assert response.status_code == 503
        assert response.json()["error"] == "EXTERNAL_API_ERROR"

    def test_malformed_isbn(self, client, use_provider):
        use_provider(FakeIsbnProvider())

        response = client.get(f"{BASE}/lookup", params={"isbn": "abc"})

        assert response.status_code == 400
