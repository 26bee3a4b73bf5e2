"""
Domain entities for the book exchange marketplace.

Entities are objects with a unique identity that runs through time and
different representations. They are the core building blocks of the domain.

Relations between entities are expressed as id references (owner_id,
book_id, requester_id, ...) resolved through repository lookups, never as
navigable object graphs.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from .value_objects import BookCondition


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Role(str, Enum):
    """Roles a user can hold in the marketplace."""

    USER = "USER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"


class BookStatus(str, Enum):
    """Availability of a book for exchange."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    EXCHANGED = "EXCHANGED"
    NOT_AVAILABLE = "NOT_AVAILABLE"


class ExchangeStatus(str, Enum):
    """Lifecycle states of an exchange request."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ExchangeType(str, Enum):
    BOOK_FOR_BOOK = "BOOK_FOR_BOOK"
    BOOK_FOR_MONEY = "BOOK_FOR_MONEY"
    FREE_GIFT = "FREE_GIFT"


# Legal transitions of the exchange state machine. Terminal states have none.
EXCHANGE_TRANSITIONS = {
    ExchangeStatus.PENDING: frozenset(
        {ExchangeStatus.ACCEPTED, ExchangeStatus.REJECTED, ExchangeStatus.CANCELLED}
    ),
    ExchangeStatus.ACCEPTED: frozenset(
        {ExchangeStatus.COMPLETED, ExchangeStatus.REJECTED, ExchangeStatus.CANCELLED}
    ),
    ExchangeStatus.REJECTED: frozenset(),
    ExchangeStatus.COMPLETED: frozenset(),
    ExchangeStatus.CANCELLED: frozenset(),
}


@dataclass
class User:
    """
    A marketplace member.

    Credentials are not part of this entity: callers are authenticated by
    an external collaborator and reach the domain as a resolved username.
    """

    username: str
    """Unique login name"""

    email: str
    """Unique e-mail address"""

    first_name: str = ""
    last_name: str = ""
    city: Optional[str] = None
    phone_number: Optional[str] = None
    bio: Optional[str] = None

    role: Role = Role.USER
    """Authorization role"""

    enabled: bool = True

    id: Optional[int] = None
    """Assigned by the identity store on first save"""

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate user data."""
        if not self.username or not self.username.strip():
            raise ValueError("username cannot be empty")

        if not self.email or "@" not in self.email:
            raise ValueError(f"email must be a valid address, got '{self.email}'")

    def __eq__(self, other: object) -> bool:
        """Two persisted users are equal if they have the same ID."""
        if not isinstance(other, User):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)

    def get_full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_moderator(self) -> bool:
        """Admins and moderators may moderate reviews."""
        return self.role in (Role.ADMIN, Role.MODERATOR)


@dataclass
class Book:
    """
    A physical book listed by its owner for exchange.

    The exchange_status field is driven by the exchange workflow; owners may
    only toggle it between AVAILABLE and NOT_AVAILABLE themselves.
    """

    title: str
    """Book title"""

    owner_id: int
    """ID of the owning user (immutable once listed)"""

    authors: List[str] = field(default_factory=list)
    """List of author names"""

    isbn: Optional[str] = None
    description: Optional[str] = None

    genres: List[str] = field(default_factory=list)
    """List of genre names"""

    language: Optional[str] = None
    publication_year: Optional[int] = None
    publisher: Optional[str] = None
    page_count: Optional[int] = None
    cover_image_url: Optional[str] = None

    estimated_price: Optional[Decimal] = None
    """Owner's estimate of the book's value"""

    condition: Optional[BookCondition] = None
    """Physical condition report"""

    exchange_status: BookStatus = BookStatus.AVAILABLE

    version: int = 0
    """Incremented on every availability change"""

    id: Optional[int] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate book data."""
        if not self.title or not self.title.strip():
            raise ValueError("Book title cannot be empty")

        if len(self.title) > 255:
            raise ValueError("Book title cannot exceed 255 characters")

        if not self.authors:
            raise ValueError("Book must have at least one author")

        if self.page_count is not None and self.page_count <= 0:
            raise ValueError(f"page_count must be positive, got {self.page_count}")

        if self.estimated_price is not None and self.estimated_price < 0:
            raise ValueError(
                f"estimated_price cannot be negative, got {self.estimated_price}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)

    def is_available(self) -> bool:
        return self.exchange_status == BookStatus.AVAILABLE

    def is_owned_by(self, user: User) -> bool:
        return user.id is not None and user.id == self.owner_id


@dataclass
class Exchange:
    """
    A request by one user to receive another user's book.

    book_id, owner_id and requester_id are fixed at creation. The status
    only changes through the exchange workflow service, which keeps the
    referenced book's availability consistent with it.
    """

    book_id: int
    owner_id: int
    """Copied from the book's owner when the request is created"""

    requester_id: int

    status: ExchangeStatus = ExchangeStatus.PENDING
    exchange_type: ExchangeType = ExchangeType.BOOK_FOR_BOOK

    message: Optional[str] = None
    """Note from the requester"""

    offered_price: Optional[Decimal] = None

    owner_response: Optional[str] = None
    """Set when the owner rejects the request"""

    exchange_date: Optional[datetime] = None
    """Set when the exchange is completed"""

    meeting_location: Optional[str] = None
    meeting_date: Optional[datetime] = None

    completed: bool = False
    """True iff status is COMPLETED"""

    id: Optional[int] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate exchange data."""
        if self.requester_id == self.owner_id:
            raise ValueError("requester must differ from the book owner")

        if self.completed != (self.status == ExchangeStatus.COMPLETED):
            raise ValueError("completed flag must match COMPLETED status")

        if self.message is not None and len(self.message) > 1000:
            raise ValueError("message cannot exceed 1000 characters")

        if self.owner_response is not None and len(self.owner_response) > 1000:
            raise ValueError("owner_response cannot exceed 1000 characters")

        if self.meeting_location is not None and len(self.meeting_location) > 500:
            raise ValueError("meeting_location cannot exceed 500 characters")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Exchange):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)

    def can_transition_to(self, status: ExchangeStatus) -> bool:
        return status in EXCHANGE_TRANSITIONS[self.status]

    def can_be_accepted(self) -> bool:
        return self.can_transition_to(ExchangeStatus.ACCEPTED)

    def can_be_completed(self) -> bool:
        return self.can_transition_to(ExchangeStatus.COMPLETED)

    def can_be_rejected(self) -> bool:
        return self.can_transition_to(ExchangeStatus.REJECTED)

    def can_be_cancelled(self) -> bool:
        return self.can_transition_to(ExchangeStatus.CANCELLED)

    def involves(self, user: User) -> bool:
        """Check whether the user is the owner or the requester."""
        return user.id is not None and user.id in (self.owner_id, self.requester_id)


@dataclass
class Review:
    """A user's rating and opinion of a listed book. Moderated before display."""

    book_id: int
    user_id: int

    rating: int
    """1 (poor) to 5 (excellent)"""

    title: Optional[str] = None
    content: Optional[str] = None

    approved: bool = False
    """Only approved reviews are shown on a book's page"""

    id: Optional[int] = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate review data."""
        if not (1 <= self.rating <= 5):
            raise ValueError(f"rating must be between 1 and 5, got {self.rating}")

        if self.title is not None and len(self.title) > 100:
            raise ValueError("review title cannot exceed 100 characters")

        if self.content is not None and len(self.content) > 2000:
            raise ValueError("review content cannot exceed 2000 characters")

    def get_star_rating(self) -> str:
        return "★" * self.rating + "☆" * (5 - self.rating)
