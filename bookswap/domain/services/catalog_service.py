"""
Domain service for the book catalog.

Owners list, edit and withdraw their books here. Availability is shared
with the exchange workflow: owners may only move a book between AVAILABLE
and NOT_AVAILABLE, while RESERVED and EXCHANGED are set exclusively by
ExchangeService.
"""

from dataclasses import replace
from datetime import datetime, UTC
from typing import Callable, Dict, Optional
import logging

from bookswap.domain.entities import Book, BookStatus, User
from bookswap.domain.exceptions import (
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from bookswap.domain.ports import BookInfoProvider, UnitOfWork, UnitOfWorkFactory
from bookswap.domain.validation import (
    is_valid_isbn,
    is_valid_publication_year,
    normalize_isbn,
)
from bookswap.domain.value_objects import (
    BOOK_SORT_FIELDS,
    BookDetails,
    BookInfo,
    BookSearchFilters,
    Page,
    PageRequest,
)

logger = logging.getLogger(__name__)

_OWNER_SETTABLE_STATUSES = (BookStatus.AVAILABLE, BookStatus.NOT_AVAILABLE)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CatalogService:
    """
    Manages listed books and catalog queries.

    Usage:
        service = CatalogService(database.unit_of_work, GoogleBooksClient())
        book = service.create_book("alice", BookDetails(title="Dune", authors=["Frank Herbert"]))
        page = service.search_books(BookSearchFilters(genre="sci-fi"), PageRequest())
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        isbn_provider: Optional[BookInfoProvider] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            uow_factory: Creates the scoped transaction each operation runs in
            isbn_provider: External bibliographic lookup; lookup_isbn fails
                with ExternalServiceError when it is not configured
            clock: Source of timestamps (injectable for tests)
        """
        self._uow_factory = uow_factory
        self._isbn_provider = isbn_provider
        self._clock = clock

    def create_book(self, owner_username: str, details: BookDetails) -> Book:
        """
        List a new book. The caller becomes its owner; it starts AVAILABLE.

        Raises:
            NotFoundError: Owner does not exist
            ForbiddenError: Owner account is disabled
            InvalidArgumentError: A field is invalid (VALIDATION_ERROR)
            ConflictError: Another book already has this ISBN (ISBN_TAKEN)
        """
        logger.info(f"Creating book '{details.title}' for owner '{owner_username}'")

        changes = self._validated_changes(details)

        with self._uow_factory() as uow:
            owner = self._require_active_user(uow, owner_username)
            self._ensure_isbn_free(uow, changes.get("isbn"))

            now = self._clock()
            try:
                book = Book(
                    owner_id=owner.id,
                    exchange_status=BookStatus.AVAILABLE,
                    created_at=now,
                    updated_at=now,
                    **{"title": "", **changes},
                )
            except ValueError as e:
                raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e

            try:
                saved = uow.books.add(book)
            except ValueError as e:
                raise ConflictError(str(e), "ISBN_TAKEN") from e
            uow.commit()

        logger.info(f"Book {saved.id} listed by '{owner_username}'")
        return saved

    def get_book(self, book_id: int) -> Book:
        with self._uow_factory(read_only=True) as uow:
            return self._require_book(uow, book_id)

    def update_book(self, book_id: int, username: str, details: BookDetails) -> Book:
        """
        Change the descriptive fields of a listing.

        Owner and availability cannot be changed here.

        Raises:
            NotFoundError: Book does not exist
            ForbiddenError: Caller is not the owner, or is disabled
            InvalidArgumentError: A new value is invalid
            ConflictError: New ISBN belongs to another book
        """
        logger.info(f"Updating book {book_id} by '{username}'")

        changes = self._validated_changes(details)

        with self._uow_factory() as uow:
            book = self._require_owned_book(uow, book_id, username)
            if changes.get("isbn") and changes["isbn"] != book.isbn:
                self._ensure_isbn_free(uow, changes["isbn"])

            try:
                updated = replace(book, updated_at=self._clock(), **changes)
            except ValueError as e:
                raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e

            try:
                uow.books.update(updated)
            except ValueError as e:
                raise ConflictError(str(e), "ISBN_TAKEN") from e
            uow.commit()

        logger.info(f"Book {book_id} updated by '{username}'")
        return updated

    def delete_book(self, book_id: int, username: str) -> None:
        """
        Withdraw a listing for good.

        Books that appear in any exchange are kept, since exchange records
        reference them.

        Raises:
            NotFoundError: Book does not exist
            ForbiddenError: Caller is not the owner, or is disabled
            ConflictError: Book is referenced by an exchange (BOOK_HAS_EXCHANGES)
        """
        logger.info(f"Deleting book {book_id} by '{username}'")

        with self._uow_factory() as uow:
            self._require_owned_book(uow, book_id, username)

            if uow.exchanges.find_by_book(book_id):
                raise ConflictError(
                    f"Book with ID {book_id} has exchange history and cannot be deleted",
                    "BOOK_HAS_EXCHANGES",
                )

            uow.books.delete(book_id)
            uow.commit()

        logger.info(f"Book {book_id} deleted by '{username}'")

    def set_availability(self, book_id: int, username: str, status: BookStatus) -> Book:
        """
        Owner toggles a book between AVAILABLE and NOT_AVAILABLE.

        Raises:
            InvalidArgumentError: Target status is RESERVED or EXCHANGED
            NotFoundError: Book does not exist
            ForbiddenError: Caller is not the owner, or is disabled
            InvalidStateError: Book is currently RESERVED or EXCHANGED
        """
        if status not in _OWNER_SETTABLE_STATUSES:
            raise InvalidArgumentError(
                f"Owners can only set a book to AVAILABLE or NOT_AVAILABLE, got {status.value}",
                "INVALID_BOOK_STATUS",
            )

        with self._uow_factory() as uow:
            book = self._require_owned_book(uow, book_id, username)

            changed = uow.books.set_status(book_id, status, expected=_OWNER_SETTABLE_STATUSES)
            if not changed:
                raise InvalidStateError(
                    f"Book with ID {book_id} is {book.exchange_status.value} "
                    f"and its availability is managed by an exchange",
                    "INVALID_BOOK_STATUS",
                )

            updated = self._require_book(uow, book_id)
            uow.commit()

        logger.info(f"Book {book_id} set to {status.value} by '{username}'")
        return updated

    def search_books(self, filters: BookSearchFilters, page_request: PageRequest) -> Page[Book]:
        """Filter the catalog. No relevance ranking: ordering follows page_request."""
        self._require_sort_field(page_request)

        with self._uow_factory(read_only=True) as uow:
            return uow.books.search(filters, page_request)

    def find_available_for_user(self, username: str, page_request: PageRequest) -> Page[Book]:
        """Available books the user could request, i.e. ones they do not own."""
        self._require_sort_field(page_request)

        with self._uow_factory(read_only=True) as uow:
            user = self._require_user(uow, username)
            filters = BookSearchFilters(
                exclude_owner_id=user.id,
                exchange_status=BookStatus.AVAILABLE.value,
            )
            return uow.books.search(filters, page_request)

    def count_by_status(self) -> Dict[BookStatus, int]:
        with self._uow_factory(read_only=True) as uow:
            return uow.books.count_by_status()

    def lookup_isbn(self, isbn: str) -> BookInfo:
        """
        Fetch bibliographic data to pre-fill a listing.

        Raises:
            InvalidArgumentError: ISBN is malformed
            NotFoundError: The provider knows no book with this ISBN
            ExternalServiceError: Provider is missing or failed
        """
        if not is_valid_isbn(isbn):
            raise InvalidArgumentError(f"Invalid ISBN: '{isbn}'", "VALIDATION_ERROR")

        if self._isbn_provider is None:
            raise ExternalServiceError("ISBN lookup is not configured")

        normalized = normalize_isbn(isbn)
        source = self._isbn_provider.get_source_name()
        logger.info(f"Looking up ISBN {normalized} via {source}")

        try:
            info = self._isbn_provider.lookup_isbn(normalized)
        except RuntimeError as e:
            logger.warning(f"ISBN lookup for {normalized} failed: {e}")
            raise ExternalServiceError.api(source, str(e)) from e

        if info is None:
            raise NotFoundError(f"No book found for ISBN {normalized}", "BOOK_NOT_FOUND")
        return info

    # =========================================================================
    # Private helpers
    # =========================================================================

    @staticmethod
    def _validated_changes(details: BookDetails) -> dict:
        """Check the fields Book itself does not validate; normalize the ISBN."""
        changes = details.changes()

        if "isbn" in changes:
            if not is_valid_isbn(changes["isbn"]):
                raise InvalidArgumentError(
                    "ISBN must have 10 or 13 characters",
                    "VALIDATION_ERROR",
                    fields={"isbn": "Invalid ISBN format"},
                )
            changes["isbn"] = normalize_isbn(changes["isbn"])

        if "publication_year" in changes and not is_valid_publication_year(
            changes["publication_year"]
        ):
            raise InvalidArgumentError(
                f"Invalid publication year: {changes['publication_year']}",
                "VALIDATION_ERROR",
                fields={"publication_year": "Invalid publication year"},
            )

        return changes

    @staticmethod
    def _ensure_isbn_free(uow: UnitOfWork, isbn: Optional[str]) -> None:
        if isbn and uow.books.get_by_isbn(isbn) is not None:
            raise ConflictError(f"A book with ISBN {isbn} is already listed", "ISBN_TAKEN")

    @staticmethod
    def _require_sort_field(page_request: PageRequest) -> None:
        try:
            page_request.require_sort_field(BOOK_SORT_FIELDS)
        except ValueError as e:
            raise InvalidArgumentError(str(e), "INVALID_PAGE_REQUEST") from e

    @staticmethod
    def _require_user(uow: UnitOfWork, username: str) -> User:
        user = uow.users.get_by_username(username)
        if user is None:
            raise NotFoundError.user(username)
        return user

    @classmethod
    def _require_active_user(cls, uow: UnitOfWork, username: str) -> User:
        user = cls._require_user(uow, username)
        if not user.enabled:
            raise ForbiddenError.account_disabled(username)
        return user

    @staticmethod
    def _require_book(uow: UnitOfWork, book_id: int) -> Book:
        book = uow.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError.book(book_id)
        return book

    def _require_owned_book(self, uow: UnitOfWork, book_id: int, username: str) -> Book:
        book = self._require_book(uow, book_id)
        owner = uow.users.get_by_id(book.owner_id)
        if owner is None or owner.username != username:
            raise ForbiddenError()
        if not owner.enabled:
            raise ForbiddenError.account_disabled(username)
        return book
