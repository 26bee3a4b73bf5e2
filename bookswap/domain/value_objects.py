"""
Value objects for the domain layer.

Value objects are immutable objects that represent descriptive aspects
of the domain with no conceptual identity.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

BOOK_SORT_FIELDS = frozenset({"created_at", "title", "publication_year", "estimated_price"})
EXCHANGE_SORT_FIELDS = frozenset({"created_at", "updated_at", "status"})
REVIEW_SORT_FIELDS = frozenset({"created_at", "rating"})

MAX_PAGE_SIZE = 100


class ConditionGrade(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


@dataclass(frozen=True)
class BookCondition:
    """
    Physical condition report for a listed book.

    This is optional information supplied by the owner when listing.
    """

    rating: int = 5
    """Overall condition from 1 (worn out) to 5 (like new)"""

    cover: ConditionGrade = ConditionGrade.EXCELLENT
    pages: ConditionGrade = ConditionGrade.EXCELLENT

    has_damage: bool = False
    damage_description: Optional[str] = None

    is_complete: bool = True
    """All pages present"""

    has_highlighting: bool = False
    has_notes: bool = False

    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate condition constraints."""
        if not (1 <= self.rating <= 5):
            raise ValueError(f"condition rating must be between 1 and 5, got {self.rating}")

        if self.damage_description and not self.has_damage:
            raise ValueError("damage_description requires has_damage=True")


@dataclass(frozen=True)
class PageRequest:
    """
    Which slice of a result set to return, and in what order.

    Pages are 0-indexed.
    """

    page: int = 0
    size: int = 10
    sort_by: str = "created_at"
    direction: str = "desc"

    def __post_init__(self) -> None:
        """Validate paging constraints."""
        if self.page < 0:
            raise ValueError(f"page must be >= 0, got {self.page}")

        if not (1 <= self.size <= MAX_PAGE_SIZE):
            raise ValueError(f"size must be between 1 and {MAX_PAGE_SIZE}, got {self.size}")

        if self.direction not in ("asc", "desc"):
            raise ValueError(f"direction must be 'asc' or 'desc', got '{self.direction}'")

    @property
    def offset(self) -> int:
        return self.page * self.size

    def require_sort_field(self, allowed: frozenset) -> None:
        """Raise ValueError if sort_by is not one of the allowed fields."""
        if self.sort_by not in allowed:
            raise ValueError(
                f"sort_by must be one of {sorted(allowed)}, got '{self.sort_by}'"
            )


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the size of the full result set."""

    items: List[T]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.size - 1) // self.size

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


@dataclass(frozen=True)
class BookSearchFilters:
    """
    Filters that can be applied to a catalog search.

    All filters are optional. When a filter is None, it means "no restriction",
    except exchange_status which defaults to AVAILABLE books only.
    """

    title: Optional[str] = None
    """Case-insensitive substring of the title"""

    author: Optional[str] = None
    """Case-insensitive substring of any author name"""

    genre: Optional[str] = None
    """Case-insensitive exact genre name"""

    language: Optional[str] = None

    min_year: Optional[int] = None
    """Minimum publication year (inclusive)"""

    max_year: Optional[int] = None
    """Maximum publication year (inclusive)"""

    min_price: Optional[Decimal] = None
    """Minimum estimated price (inclusive)"""

    max_price: Optional[Decimal] = None
    """Maximum estimated price (inclusive)"""

    owner_id: Optional[int] = None
    exclude_owner_id: Optional[int] = None

    exchange_status: Optional[str] = "AVAILABLE"
    """Availability to match; None matches every status"""

    def __post_init__(self) -> None:
        """Validate filter constraints."""
        if self.min_year is not None and self.max_year is not None:
            if self.min_year > self.max_year:
                raise ValueError(
                    f"min_year ({self.min_year}) cannot be greater than "
                    f"max_year ({self.max_year})"
                )

        for name in ("min_price", "max_price"):
            price = getattr(self, name)
            if price is not None and price < 0:
                raise ValueError(f"{name} cannot be negative, got {price}")

        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError(
                    f"min_price ({self.min_price}) cannot be greater than "
                    f"max_price ({self.max_price})"
                )


@dataclass(frozen=True)
class BookInfo:
    """
    Bibliographic data about an ISBN fetched from an external source.

    Used to pre-fill a new listing; never persisted as-is.
    """

    isbn: str
    title: str
    authors: List[str] = field(default_factory=list)
    description: Optional[str] = None
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    page_count: Optional[int] = None
    language: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    cover_image_url: Optional[str] = None

    @property
    def publication_year(self) -> Optional[int]:
        """Year prefix of published_date ('2019-05-02' -> 2019), if parseable."""
        if self.published_date and len(self.published_date) >= 4:
            try:
                return int(self.published_date[:4])
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class RatingStats:
    """Aggregate over a book's approved reviews."""

    average: Optional[float]
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"count cannot be negative, got {self.count}")
        if self.count == 0 and self.average is not None:
            raise ValueError("average must be None when there are no reviews")


@dataclass
class ValidationResult:
    """Field-level validation failures collected before a write."""

    errors: Dict[str, str] = field(default_factory=dict)

    def add_error(self, field_name: str, message: str) -> None:
        # First failure per field wins
        self.errors.setdefault(field_name, message)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def first_error(self) -> Optional[str]:
        return next(iter(self.errors.values()), None)


@dataclass(frozen=True)
class BookDetails:
    """
    Descriptive fields of a listing, as supplied by its owner.

    Used both to create a book and to update one. On update, a field left
    as None keeps its current value.
    """

    title: Optional[str] = None
    authors: Optional[List[str]] = None
    isbn: Optional[str] = None
    description: Optional[str] = None
    genres: Optional[List[str]] = None
    language: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = None
    cover_image_url: Optional[str] = None
    estimated_price: Optional[Decimal] = None
    condition: Optional[BookCondition] = None

    def changes(self) -> Dict[str, Any]:
        """Fields that were provided, by name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
