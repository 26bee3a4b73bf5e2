"""
API endpoints for the book catalog.

Listing, editing and searching books, plus ISBN lookup and catalog
statistics. Reviews of a book live in review_endpoints.py.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status

from bookswap.domain.entities import BookStatus
from bookswap.domain.exceptions import InvalidArgumentError
from bookswap.domain.services import CatalogService
from bookswap.domain.value_objects import BookSearchFilters
from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    api_book_request_to_domain,
    domain_book_info_to_api,
    domain_book_page_to_api,
    domain_book_to_api,
    to_page_request,
)
from bookswap.api.v1.dependencies import get_catalog_service, get_current_username

router = APIRouter(prefix="/books")


@router.get("", response_model=api.BookPage)
def search_books(
    title: str | None = None,
    author: str | None = None,
    genre: str | None = None,
    language: str | None = None,
    min_year: int | None = None,
    max_year: int | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    owner_id: int | None = None,
    exchange_status: api.BookStatusLiteral | None = Query(
        default="AVAILABLE",
        description="Availability to match; defaults to AVAILABLE",
    ),
    any_status: bool = Query(default=False, description="Ignore exchange_status"),
    page: int = 0,
    size: int = 10,
    sort_by: str = "created_at",
    direction: str = "desc",
    service: CatalogService = Depends(get_catalog_service),
) -> api.BookPage:
    """
    Search the catalog with optional filters.

    All filters combine with AND. Results are ordered by sort_by, not by
    relevance.
    """
    try:
        filters = BookSearchFilters(
            title=title,
            author=author,
            genre=genre,
            language=language,
            min_year=min_year,
            max_year=max_year,
            min_price=min_price,
            max_price=max_price,
            owner_id=owner_id,
            exchange_status=None if any_status else exchange_status,
        )
    except ValueError as e:
        raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e

    page_request = to_page_request(page, size, sort_by, direction)
    return domain_book_page_to_api(service.search_books(filters, page_request))


@router.post("", response_model=api.Book, status_code=status.HTTP_201_CREATED)
def create_book(
    request: api.BookCreateRequest,
    username: str = Depends(get_current_username),
    service: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """List a new book owned by the caller."""
    book = service.create_book(username, api_book_request_to_domain(request))
    return domain_book_to_api(book)


@router.get("/available", response_model=api.BookPage)
def get_available_books(
    page: int = 0,
    size: int = 10,
    sort_by: str = "created_at",
    direction: str = "desc",
    username: str = Depends(get_current_username),
    service: CatalogService = Depends(get_catalog_service),
) -> api.BookPage:
    """Available books the caller could request (not their own)."""
    page_request = to_page_request(page, size, sort_by, direction)
    return domain_book_page_to_api(service.find_available_for_user(username, page_request))


@router.get("/lookup", response_model=api.BookInfo)
def lookup_isbn(
    isbn: str,
    service: CatalogService = Depends(get_catalog_service),
) -> api.BookInfo:
    """
    Fetch bibliographic data for an ISBN from Google Books.

    Raises:
        400: Malformed ISBN
        404: No book with this ISBN
        503: Google Books unavailable
    """
    return domain_book_info_to_api(service.lookup_isbn(isbn))


@router.get("/stats", response_model=api.BookStats)
def get_book_stats(
    service: CatalogService = Depends(get_catalog_service),
) -> api.BookStats:
    counts = service.count_by_status()
    return api.BookStats(
        counts={status_.value: count for status_, count in counts.items()},
        total=sum(counts.values()),
    )


@router.get("/{book_id}", response_model=api.Book)
def get_book(
    book_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """
    Get a book by its identifier.

    Raises:
        404: Book not found
    """
    return domain_book_to_api(service.get_book(book_id))


@router.put("/{book_id}", response_model=api.Book)
def update_book(
    book_id: int,
    request: api.BookUpdateRequest,
    username: str = Depends(get_current_username),
    service: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """Owner edits the descriptive fields of a listing."""
    book = service.update_book(book_id, username, api_book_request_to_domain(request))
    return domain_book_to_api(book)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(
    book_id: int,
    username: str = Depends(get_current_username),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    """Owner withdraws a listing that was never part of an exchange."""
    service.delete_book(book_id, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{book_id}/availability", response_model=api.Book)
def set_availability(
    book_id: int,
    request: api.AvailabilityRequest,
    username: str = Depends(get_current_username),
    service: CatalogService = Depends(get_catalog_service),
) -> api.Book:
    """Owner toggles a book between AVAILABLE and NOT_AVAILABLE."""
    book = service.set_availability(book_id, username, BookStatus(request.status))
    return domain_book_to_api(book)
