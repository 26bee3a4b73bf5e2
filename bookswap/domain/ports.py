"""
Port interfaces (protocols) for the domain layer.

Ports define the contracts between the domain and infrastructure layers.
They are implemented by adapters in the infrastructure layer, allowing
the domain to remain independent of technical details.

Following Hexagonal Architecture principles, the domain layer depends only
on these abstract protocols, never on concrete implementations.

Repositories are always reached through a UnitOfWork: every repository
call made inside one unit shares its transaction, so a service can change
an exchange and the book it references and have both writes commit or
roll back together.
"""

from typing import Dict, Iterable, List, Optional, Protocol, Union

from .entities import Book, BookStatus, Exchange, Review, User
from .value_objects import BookInfo, BookSearchFilters, Page, PageRequest, RatingStats


class BookCatalogRepository(Protocol):
    """
    Port for persisting and retrieving listed books (the Catalog Store).

    Implementations should handle:
    - Unique constraint on isbn (when present)
    - Keeping exchange_status out of plain detail updates; availability
      only changes through set_status()
    """

    def add(self, book: Book) -> Book:
        """
        Insert a new book.

        Args:
            book: Book without an id

        Returns:
            The same book with its id assigned

        Raises:
            ValueError: If the book violates catalog constraints (duplicate ISBN)
            RuntimeError: If a database error occurs
        """
        ...

    def get_by_id(self, book_id: int) -> Optional[Book]:
        """Retrieve a book by id, or None if it does not exist."""
        ...

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        ...

    def update(self, book: Book) -> None:
        """
        Persist changed descriptive fields of an existing book.

        owner_id, exchange_status and version are never written by this
        method.

        Raises:
            ValueError: If the update violates catalog constraints
            RuntimeError: If a database error occurs
        """
        ...

    def set_status(
        self,
        book_id: int,
        status: BookStatus,
        expected: Union[BookStatus, Iterable[BookStatus], None] = None,
    ) -> bool:
        """
        Change a book's availability, bumping its version.

        When expected is given the change is a compare-and-set: it only
        applies if the stored status is (one of) expected at write time.

        Returns:
            True if the row was updated, False if the book is missing or
            its status did not match expected
        """
        ...

    def delete(self, book_id: int) -> bool:
        """Delete a book. Returns True if it existed."""
        ...

    def search(self, filters: BookSearchFilters, page_request: PageRequest) -> Page[Book]:
        """
        Filter the catalog and return one page of matches.

        Args:
            filters: Conditions combined with AND
            page_request: Paging and ordering; sort_by must be one of
                BOOK_SORT_FIELDS

        Returns:
            Page of books with the total number of matches
        """
        ...

    def count_by_status(self) -> Dict[BookStatus, int]:
        """Number of books per availability status (every status present)."""
        ...


class UserRepository(Protocol):
    """Port for the Identity Store. username and email are unique."""

    def add(self, user: User) -> User:
        """
        Insert a new user and assign its id.

        Raises:
            ValueError: If username or email is already taken
            RuntimeError: If a database error occurs
        """
        ...

    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_by_username(self, username: str) -> Optional[User]:
        ...

    def exists_by_username(self, username: str) -> bool:
        ...

    def exists_by_email(self, email: str) -> bool:
        ...

    def update(self, user: User) -> None:
        """Persist profile, role and enabled changes of an existing user."""
        ...


class ExchangeRepository(Protocol):
    """
    Port for the Exchange Ledger.

    Exchange records are never deleted; they form the audit trail of every
    request. Only the exchange workflow service calls update().
    """

    def add(self, exchange: Exchange) -> Exchange:
        """Insert a new exchange and assign its id."""
        ...

    def get_by_id(self, exchange_id: int) -> Optional[Exchange]:
        ...

    def update(self, exchange: Exchange) -> None:
        """
        Persist the mutable fields of an exchange (status, completed,
        owner_response, exchange_date, meeting details, updated_at).
        """
        ...

    def find_by_requester(self, requester_id: int) -> List[Exchange]:
        """All exchanges requested by the user, newest first, any status."""
        ...

    def find_by_participant(self, user_id: int, page_request: PageRequest) -> Page[Exchange]:
        """
        Exchanges where the user is the owner or the requester.

        Args:
            user_id: The participant
            page_request: Paging and ordering; sort_by must be one of
                EXCHANGE_SORT_FIELDS
        """
        ...

    def find_pending_for_owner(self, owner_id: int) -> List[Exchange]:
        """PENDING exchanges for books owned by the user, newest first."""
        ...

    def find_by_book(self, book_id: int) -> List[Exchange]:
        ...


class ReviewRepository(Protocol):
    """Port for the Review Store."""

    def add(self, review: Review) -> Review:
        ...

    def get_by_id(self, review_id: int) -> Optional[Review]:
        ...

    def update(self, review: Review) -> None:
        ...

    def delete(self, review_id: int) -> bool:
        ...

    def find_approved_by_book(self, book_id: int, page_request: PageRequest) -> Page[Review]:
        """Approved reviews of a book; sort_by must be one of REVIEW_SORT_FIELDS."""
        ...

    def find_by_user(self, user_id: int) -> List[Review]:
        ...

    def find_latest(self, limit: int) -> List[Review]:
        ...

    def rating_stats(self, book_id: int) -> RatingStats:
        """Average rating and count over the book's approved reviews."""
        ...


class UnitOfWork(Protocol):
    """
    A scoped transaction over every store.

    Usage:
        with uow_factory() as uow:
            book = uow.books.get_by_id(book_id)
            ...
            uow.commit()

    Leaving the block without commit(), or through an exception, rolls
    back every write made through the unit's repositories.
    """

    books: BookCatalogRepository
    users: UserRepository
    exchanges: ExchangeRepository
    reviews: ReviewRepository

    def __enter__(self) -> "UnitOfWork":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class UnitOfWorkFactory(Protocol):
    """
    Creates a fresh unit of work per operation.

    read_only units may skip taking the write lock.
    """

    def __call__(self, read_only: bool = False) -> UnitOfWork:
        ...


class BookInfoProvider(Protocol):
    """
    Port for looking up bibliographic data by ISBN in an external API.

    Implementations should handle HTTP transport, response parsing and
    normalization into BookInfo.
    """

    def lookup_isbn(self, isbn: str) -> Optional[BookInfo]:
        """
        Fetch data for an ISBN.

        Args:
            isbn: Normalized ISBN-10 or ISBN-13

        Returns:
            BookInfo for the first matching volume, None if nothing matched

        Raises:
            RuntimeError: If the API request fails
        """
        ...

    def get_source_name(self) -> str:
        ...
