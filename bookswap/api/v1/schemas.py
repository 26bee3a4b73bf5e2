"""
Request and response models for the v1 HTTP API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


BookStatusLiteral = Literal["AVAILABLE", "RESERVED", "EXCHANGED", "NOT_AVAILABLE"]
ExchangeStatusLiteral = Literal["PENDING", "ACCEPTED", "REJECTED", "COMPLETED", "CANCELLED"]
ConditionGradeLiteral = Literal["EXCELLENT", "GOOD", "FAIR", "POOR"]
RoleLiteral = Literal["USER", "ADMIN", "MODERATOR"]


# =============================================================================
# Errors
# =============================================================================

class ErrorResponse(BaseModel):
    """
    Body of every failed request.
    """
    error: str = Field(description="Machine-readable error code (e.g. 'BOOK_NOT_AVAILABLE')")
    message: str = Field(description="Human-readable explanation")
    path: str = Field(description="Request path that failed")
    fields: dict[str, str] | None = Field(
        default=None,
        description="Per-field messages for validation failures"
    )


class Ack(BaseModel):
    success: bool = True
    message: str


# =============================================================================
# Books
# =============================================================================

class BookCondition(BaseModel):
    rating: int = Field(default=5, ge=1, le=5, description="Overall condition, 5 = like new")
    cover: ConditionGradeLiteral = "EXCELLENT"
    pages: ConditionGradeLiteral = "EXCELLENT"
    has_damage: bool = False
    damage_description: str | None = None
    is_complete: bool = True
    has_highlighting: bool = False
    has_notes: bool = False
    description: str | None = None


class BookCreateRequest(BaseModel):
    """
    Request body for POST /books. The caller becomes the owner.
    """
    title: str = Field(description="Book title")
    authors: list[str] = Field(description="List of author names (at least one)")
    isbn: str | None = Field(default=None, description="ISBN-10 or ISBN-13, separators allowed")
    description: str | None = None
    genres: list[str] = Field(default_factory=list)
    language: str | None = None
    publication_year: int | None = None
    publisher: str | None = None
    page_count: int | None = None
    cover_image_url: str | None = None
    estimated_price: Decimal | None = None
    condition: BookCondition | None = None


class BookUpdateRequest(BaseModel):
    """
    Request body for PUT /books/{id}. Omitted fields keep their value.
    """
    title: str | None = None
    authors: list[str] | None = None
    isbn: str | None = None
    description: str | None = None
    genres: list[str] | None = None
    language: str | None = None
    publication_year: int | None = None
    publisher: str | None = None
    page_count: int | None = None
    cover_image_url: str | None = None
    estimated_price: Decimal | None = None
    condition: BookCondition | None = None


class AvailabilityRequest(BaseModel):
    status: BookStatusLiteral = Field(description="AVAILABLE or NOT_AVAILABLE")


class Book(BaseModel):
    """
    API representation of a listed book.
    """
    id: int
    owner_id: int
    title: str
    authors: list[str]
    isbn: str | None = None
    description: str | None = None
    genres: list[str] = Field(default_factory=list)
    language: str | None = None
    publication_year: int | None = None
    publisher: str | None = None
    page_count: int | None = None
    cover_image_url: str | None = None
    estimated_price: Decimal | None = None
    condition: BookCondition | None = None
    exchange_status: BookStatusLiteral
    version: int
    created_at: datetime
    updated_at: datetime


class BookPage(BaseModel):
    items: list[Book]
    total: int
    page: int
    size: int
    total_pages: int
    has_next: bool


class BookInfo(BaseModel):
    """
    Bibliographic data from an external source, used to pre-fill a listing.
    """
    isbn: str
    title: str
    authors: list[str]
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    publication_year: int | None = None
    page_count: int | None = None
    language: str | None = None
    categories: list[str] = Field(default_factory=list)
    cover_image_url: str | None = None


class BookStats(BaseModel):
    counts: dict[str, int] = Field(description="Number of books per availability status")
    total: int


# =============================================================================
# Exchanges
# =============================================================================

class ExchangeCreateRequest(BaseModel):
    book_id: int = Field(description="The book being requested")
    message: str | None = Field(default=None, description="Optional note to the owner")


class ExchangeCreated(BaseModel):
    exchange_id: int
    status: ExchangeStatusLiteral


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, description="Optional explanation for the requester")


class Exchange(BaseModel):
    """
    API representation of an exchange request.
    """
    id: int
    book_id: int
    owner_id: int
    requester_id: int
    status: ExchangeStatusLiteral
    exchange_type: str
    message: str | None = None
    offered_price: Decimal | None = None
    owner_response: str | None = None
    exchange_date: datetime | None = None
    meeting_location: str | None = None
    meeting_date: datetime | None = None
    completed: bool
    created_at: datetime
    updated_at: datetime


class ExchangePage(BaseModel):
    items: list[Exchange]
    total: int
    page: int
    size: int
    total_pages: int
    has_next: bool


# =============================================================================
# Reviews
# =============================================================================

class ReviewRequest(BaseModel):
    """
    Request body for creating or rewriting a review.
    """
    rating: int = Field(description="1 (poor) to 5 (excellent)")
    content: str | None = None
    title: str | None = None


class Review(BaseModel):
    id: int
    book_id: int
    user_id: int
    rating: int
    stars: str
    title: str | None = None
    content: str | None = None
    approved: bool
    created_at: datetime
    updated_at: datetime


class ReviewPage(BaseModel):
    items: list[Review]
    total: int
    page: int
    size: int
    total_pages: int
    has_next: bool


class RatingStats(BaseModel):
    average: float | None = Field(description="Mean rating of approved reviews, null if none")
    count: int


# =============================================================================
# Users
# =============================================================================

class UserRegisterRequest(BaseModel):
    username: str
    email: str
    first_name: str
    last_name: str
    city: str
    phone_number: str | None = None
    bio: str | None = None


class UserUpdateRequest(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    city: str | None = None
    phone_number: str | None = None
    bio: str | None = None


class RoleRequest(BaseModel):
    role: RoleLiteral


class User(BaseModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    city: str | None = None
    phone_number: str | None = None
    bio: str | None = None
    role: RoleLiteral
    enabled: bool
    created_at: datetime
