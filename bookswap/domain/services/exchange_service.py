"""
Exchange workflow service.

Drives exchange requests through their state machine while keeping the
availability of the requested book consistent with it:

    (none)    --create_exchange_request--> PENDING      book: AVAILABLE -> RESERVED
    PENDING   --approve-->                 ACCEPTED     book stays RESERVED
    ACCEPTED  --complete-->                COMPLETED    book: RESERVED -> EXCHANGED
    PENDING,
    ACCEPTED  --reject-->                  REJECTED     book: -> AVAILABLE
    PENDING,
    ACCEPTED  --cancel-->                  CANCELLED    book: -> AVAILABLE

REJECTED, COMPLETED and CANCELLED are terminal.

Every operation runs inside one unit of work: the exchange write and the
book write commit together or not at all. Callers identify themselves by a
username resolved by the authentication layer; it is passed explicitly to
every operation.
"""

from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Callable, Iterator, List, Optional
import logging

from bookswap.domain.entities import Book, BookStatus, Exchange, ExchangeStatus, ExchangeType, User
from bookswap.domain.exceptions import (
    BookSwapError,
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from bookswap.domain.ports import UnitOfWork, UnitOfWorkFactory
from bookswap.domain.value_objects import EXCHANGE_SORT_FIELDS, Page, PageRequest

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ExchangeService:
    """
    Orchestrates the book exchange lifecycle.

    The service is technology-agnostic and depends only on the unit of work
    port. It never retries: a failed operation is final and the caller
    decides whether to resubmit.

    Usage:
        service = ExchangeService(database.unit_of_work)
        exchange = service.create_exchange_request(book_id=42, requester_username="alice")
        service.approve(exchange.id, "bob")
        service.complete(exchange.id, "bob")
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the exchange service.

        Args:
            uow_factory: Creates the scoped transaction each operation runs in
            clock: Source of timestamps (injectable for tests)
        """
        self._uow_factory = uow_factory
        self._clock = clock

    # =========================================================================
    # Transitions
    # =========================================================================

    def create_exchange_request(
        self,
        book_id: int,
        requester_username: str,
        message: Optional[str] = None,
    ) -> Exchange:
        """
        Request another user's book.

        Creates a PENDING exchange and reserves the book in the same
        transaction. The availability check is repeated as a compare-and-set
        at write time, so of two concurrent requests for one book exactly
        one succeeds.

        Args:
            book_id: The requested book
            requester_username: Authenticated caller
            message: Optional note to the owner

        Returns:
            The persisted exchange, including its id

        Raises:
            NotFoundError: Book or requester does not exist
            ForbiddenError: Requester account is disabled
            ConflictError: Book is not AVAILABLE
            InvalidArgumentError: Requester owns the book
        """
        logger.info(f"Creating exchange request for book {book_id} by user '{requester_username}'")

        with self._failures_logged("create exchange request for book", book_id, requester_username):
            with self._uow_factory() as uow:
                book = self._require_book(uow, book_id)
                requester = self._require_active_user(uow, requester_username)

                if book.exchange_status != BookStatus.AVAILABLE:
                    raise ConflictError.book_not_available(book_id)

                if book.is_owned_by(requester):
                    raise InvalidArgumentError.own_book_request()

                now = self._clock()
                try:
                    exchange = Exchange(
                        book_id=book.id,
                        owner_id=book.owner_id,
                        requester_id=requester.id,
                        status=ExchangeStatus.PENDING,
                        exchange_type=ExchangeType.BOOK_FOR_BOOK,
                        message=message,
                        created_at=now,
                        updated_at=now,
                    )
                except ValueError as e:
                    raise InvalidArgumentError(str(e)) from e

                reserved = uow.books.set_status(
                    book.id, BookStatus.RESERVED, expected=BookStatus.AVAILABLE
                )
                if not reserved:
                    # Someone else reserved it between our read and our write
                    raise ConflictError.book_not_available(book_id)

                saved = uow.exchanges.add(exchange)
                uow.commit()

        logger.info(
            f"Exchange {saved.id} created by '{requester_username}' for book {book_id} "
            f"(status={saved.status.value})"
        )
        return saved

    def approve(self, exchange_id: int, owner_username: str) -> Exchange:
        """
        Accept a pending request. The book stays RESERVED.

        Raises:
            NotFoundError: Exchange (or its book) does not exist
            ForbiddenError: Caller is not the book's owner, or is disabled
            InvalidStateError: Exchange is not PENDING
        """
        logger.info(f"Approving exchange {exchange_id} by owner '{owner_username}'")

        with self._failures_logged("approve exchange", exchange_id, owner_username):
            with self._uow_factory() as uow:
                exchange = self._load_owned_exchange(uow, exchange_id, owner_username)
                self._require_transition(exchange, exchange.can_be_accepted(), "approve")
                self._require_book(uow, exchange.book_id)

                exchange.status = ExchangeStatus.ACCEPTED
                exchange.updated_at = self._clock()
                uow.exchanges.update(exchange)
                uow.commit()

        self._log_transition(exchange, owner_username, "approved")
        return exchange

    def complete(self, exchange_id: int, owner_username: str) -> Exchange:
        """
        Record that an accepted exchange took place.

        Marks the exchange COMPLETED with today's exchange date and the book
        EXCHANGED, atomically.

        Raises:
            NotFoundError: Exchange (or its book) does not exist
            ForbiddenError: Caller is not the book's owner, or is disabled
            InvalidStateError: Exchange is not ACCEPTED
            ConflictError: The book is no longer RESERVED (INVALID_BOOK_STATUS)
        """
        logger.info(f"Completing exchange {exchange_id} by owner '{owner_username}'")

        with self._failures_logged("complete exchange", exchange_id, owner_username):
            with self._uow_factory() as uow:
                exchange = self._load_owned_exchange(uow, exchange_id, owner_username)
                self._require_transition(exchange, exchange.can_be_completed(), "complete")
                book = self._require_book(uow, exchange.book_id)

                now = self._clock()
                exchange.status = ExchangeStatus.COMPLETED
                exchange.completed = True
                exchange.exchange_date = now
                exchange.updated_at = now
                uow.exchanges.update(exchange)

                if not uow.books.set_status(
                    book.id, BookStatus.EXCHANGED, expected=BookStatus.RESERVED
                ):
                    # Book was moved out of RESERVED since the exchange was accepted
                    raise ConflictError(
                        f"Book with ID {book.id} is not reserved for this exchange",
                        "INVALID_BOOK_STATUS",
                    )
                uow.commit()

        self._log_transition(exchange, owner_username, "completed")
        return exchange

    def reject(
        self,
        exchange_id: int,
        owner_username: str,
        reason: Optional[str] = None,
    ) -> None:
        """
        Turn down a request and release the book.

        The book goes back to AVAILABLE whatever its current status. Only
        active exchanges (PENDING or ACCEPTED) can be rejected, so an
        already EXCHANGED book is never put back on offer.

        Args:
            exchange_id: The exchange to reject
            owner_username: Authenticated caller
            reason: Optional explanation stored as the owner's response

        Raises:
            NotFoundError: Exchange (or its book) does not exist
            ForbiddenError: Caller is not the book's owner, or is disabled
            InvalidStateError: Exchange is already REJECTED, COMPLETED or CANCELLED
            InvalidArgumentError: Reason is too long
        """
        logger.info(f"Rejecting exchange {exchange_id} by owner '{owner_username}'")

        if reason is not None and len(reason) > 1000:
            raise InvalidArgumentError("Reason cannot exceed 1000 characters")

        with self._failures_logged("reject exchange", exchange_id, owner_username):
            with self._uow_factory() as uow:
                exchange = self._load_owned_exchange(uow, exchange_id, owner_username)
                self._require_transition(exchange, exchange.can_be_rejected(), "reject")
                book = self._require_book(uow, exchange.book_id)

                exchange.status = ExchangeStatus.REJECTED
                if reason is not None:
                    exchange.owner_response = reason
                exchange.updated_at = self._clock()
                uow.exchanges.update(exchange)
                uow.books.set_status(book.id, BookStatus.AVAILABLE)
                uow.commit()

        self._log_transition(exchange, owner_username, "rejected")

    def cancel(self, exchange_id: int, username: str) -> Exchange:
        """
        Withdraw an active exchange. Either participant may cancel.

        Raises:
            NotFoundError: Exchange (or its book) does not exist
            ForbiddenError: Caller is neither owner nor requester, or is disabled
            InvalidStateError: Exchange is not PENDING or ACCEPTED
        """
        logger.info(f"Cancelling exchange {exchange_id} by user '{username}'")

        with self._failures_logged("cancel exchange", exchange_id, username):
            with self._uow_factory() as uow:
                exchange = self._load_visible_exchange(uow, exchange_id, username, active_only=True)
                self._require_transition(exchange, exchange.can_be_cancelled(), "cancel")
                book = self._require_book(uow, exchange.book_id)

                exchange.status = ExchangeStatus.CANCELLED
                exchange.updated_at = self._clock()
                uow.exchanges.update(exchange)
                uow.books.set_status(book.id, BookStatus.AVAILABLE)
                uow.commit()

        self._log_transition(exchange, username, "cancelled")
        return exchange

    # =========================================================================
    # Queries
    # =========================================================================

    def get_exchange(self, exchange_id: int, username: str) -> Exchange:
        """Fetch one exchange; only its owner and requester may see it."""
        with self._uow_factory(read_only=True) as uow:
            return self._load_visible_exchange(uow, exchange_id, username)

    def get_user_exchanges(self, username: str, page_request: PageRequest) -> Page[Exchange]:
        """All exchanges where the user is owner or requester, one page at a time."""
        try:
            page_request.require_sort_field(EXCHANGE_SORT_FIELDS)
        except ValueError as e:
            raise InvalidArgumentError(str(e), "INVALID_PAGE_REQUEST") from e

        with self._uow_factory(read_only=True) as uow:
            user = self._require_user(uow, username)
            return uow.exchanges.find_by_participant(user.id, page_request)

    def get_incoming_requests(self, username: str) -> List[Exchange]:
        """PENDING requests for books the user owns."""
        with self._uow_factory(read_only=True) as uow:
            user = self._require_user(uow, username)
            return uow.exchanges.find_pending_for_owner(user.id)

    def get_outgoing_requests(self, username: str) -> List[Exchange]:
        """Requests the user has made, in any status."""
        with self._uow_factory(read_only=True) as uow:
            user = self._require_user(uow, username)
            return uow.exchanges.find_by_requester(user.id)

    # =========================================================================
    # Private helpers
    # =========================================================================

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

    @staticmethod
    def _load_owned_exchange(uow: UnitOfWork, exchange_id: int, username: str) -> Exchange:
        """Load an exchange the caller owns; the owner is re-read from the identity store."""
        exchange = uow.exchanges.get_by_id(exchange_id)
        if exchange is None:
            raise NotFoundError.exchange(exchange_id)

        owner = uow.users.get_by_id(exchange.owner_id)
        if owner is None or owner.username != username:
            raise ForbiddenError()
        if not owner.enabled:
            raise ForbiddenError.account_disabled(username)
        return exchange

    @staticmethod
    def _load_visible_exchange(
        uow: UnitOfWork,
        exchange_id: int,
        username: str,
        active_only: bool = False,
    ) -> Exchange:
        exchange = uow.exchanges.get_by_id(exchange_id)
        if exchange is None:
            raise NotFoundError.exchange(exchange_id)

        caller = uow.users.get_by_username(username)
        if caller is None or not exchange.involves(caller):
            raise ForbiddenError()
        if active_only and not caller.enabled:
            raise ForbiddenError.account_disabled(username)
        return exchange

    @staticmethod
    def _require_transition(exchange: Exchange, allowed: bool, action: str) -> None:
        if not allowed:
            raise InvalidStateError(
                f"Cannot {action} exchange in current status {exchange.status.value}"
            )

    @staticmethod
    def _log_transition(exchange: Exchange, actor: str, verb: str) -> None:
        logger.info(
            f"Exchange {exchange.id} {verb} by '{actor}' (status={exchange.status.value})"
        )

    @contextmanager
    def _failures_logged(self, action: str, target: object, actor: str) -> Iterator[None]:
        """Log why an operation failed, then let the error propagate unchanged."""
        try:
            yield
        except BookSwapError as e:
            logger.warning(f"Failed to {action} {target} by '{actor}': {e.code} - {e.message}")
            raise
        except Exception:
            logger.exception(f"Unexpected error trying to {action} {target} by '{actor}'")
            raise
