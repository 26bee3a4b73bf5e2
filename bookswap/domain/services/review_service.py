"""
Domain service for book reviews.

Reviews start unapproved and only appear on a book's page after an admin
or moderator approves them. Editing a review sends it back to moderation.
"""

from dataclasses import replace
from datetime import datetime, UTC
from typing import Callable, List, Optional
import logging

from bookswap.domain.entities import Book, Review, User
from bookswap.domain.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from bookswap.domain.ports import UnitOfWork, UnitOfWorkFactory
from bookswap.domain.validation import is_valid_rating
from bookswap.domain.value_objects import REVIEW_SORT_FIELDS, Page, PageRequest, RatingStats

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 2000
MAX_LATEST_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReviewService:
    """Creates, moderates and lists reviews."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    def create_review(
        self,
        book_id: int,
        username: str,
        rating: int,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Review:
        """
        Review someone else's book.

        Raises:
            InvalidArgumentError: Bad rating (INVALID_RATING), content too
                long (COMMENT_TOO_LONG) or the caller owns the book
                (REVIEW_OWN_BOOK)
            NotFoundError: Book or user does not exist
            ForbiddenError: Caller account is disabled
        """
        logger.info(f"Creating review for book {book_id} by user '{username}'")

        self._validate_review_data(rating, content)

        with self._uow_factory() as uow:
            book = self._require_book(uow, book_id)
            user = self._require_active_user(uow, username)

            if book.is_owned_by(user):
                raise InvalidArgumentError("Cannot review your own book", "REVIEW_OWN_BOOK")

            now = self._clock()
            try:
                review = Review(
                    book_id=book.id,
                    user_id=user.id,
                    rating=rating,
                    title=title,
                    content=content,
                    approved=False,
                    created_at=now,
                    updated_at=now,
                )
            except ValueError as e:
                raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e

            saved = uow.reviews.add(review)
            uow.commit()

        logger.info(f"Review created with ID: {saved.id}")
        return saved

    def update_review(
        self,
        review_id: int,
        username: str,
        rating: int,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Review:
        """Rewrite a review. Author only; the review returns to moderation."""
        logger.info(f"Updating review {review_id} by user '{username}'")

        self._validate_review_data(rating, content)

        with self._uow_factory() as uow:
            review = self._require_review(uow, review_id)
            author = uow.users.get_by_id(review.user_id)
            if author is None or author.username != username:
                raise ForbiddenError()
            if not author.enabled:
                raise ForbiddenError.account_disabled(username)

            try:
                updated = replace(
                    review,
                    rating=rating,
                    content=content,
                    title=title,
                    approved=False,
                    updated_at=self._clock(),
                )
            except ValueError as e:
                raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e

            uow.reviews.update(updated)
            uow.commit()

        logger.info(f"Review {review_id} updated")
        return updated

    def delete_review(self, review_id: int, username: str) -> None:
        """Remove a review. Allowed for its author and for admins or moderators."""
        logger.info(f"Deleting review {review_id} by user '{username}'")

        with self._uow_factory() as uow:
            review = self._require_review(uow, review_id)
            caller = self._require_active_user(uow, username)

            if caller.id != review.user_id and not caller.is_moderator():
                raise ForbiddenError()

            uow.reviews.delete(review_id)
            uow.commit()

        logger.info(f"Review {review_id} deleted")

    def approve_review(self, review_id: int, moderator_username: str) -> Review:
        """Publish a review on its book's page. ADMIN or MODERATOR only."""
        with self._uow_factory() as uow:
            moderator = self._require_active_user(uow, moderator_username)
            if not moderator.is_moderator():
                raise ForbiddenError()

            review = self._require_review(uow, review_id)
            review.approved = True
            review.updated_at = self._clock()
            uow.reviews.update(review)
            uow.commit()

        logger.info(f"Review {review_id} approved by '{moderator_username}'")
        return review

    def get_book_reviews(self, book_id: int, page_request: PageRequest) -> Page[Review]:
        """Approved reviews of a book."""
        try:
            page_request.require_sort_field(REVIEW_SORT_FIELDS)
        except ValueError as e:
            raise InvalidArgumentError(str(e), "INVALID_PAGE_REQUEST") from e

        with self._uow_factory(read_only=True) as uow:
            self._require_book(uow, book_id)
            return uow.reviews.find_approved_by_book(book_id, page_request)

    def get_user_reviews(self, username: str) -> List[Review]:
        with self._uow_factory(read_only=True) as uow:
            user = self._require_user(uow, username)
            return uow.reviews.find_by_user(user.id)

    def get_latest_reviews(self, limit: int = 10) -> List[Review]:
        if not (1 <= limit <= MAX_LATEST_LIMIT):
            raise InvalidArgumentError(
                f"limit must be between 1 and {MAX_LATEST_LIMIT}, got {limit}",
                "INVALID_PAGE_REQUEST",
            )

        with self._uow_factory(read_only=True) as uow:
            return uow.reviews.find_latest(limit)

    def get_rating_stats(self, book_id: int) -> RatingStats:
        with self._uow_factory(read_only=True) as uow:
            self._require_book(uow, book_id)
            return uow.reviews.rating_stats(book_id)

    # =========================================================================
    # Private helpers
    # =========================================================================

    @staticmethod
    def _validate_review_data(rating: Optional[int], content: Optional[str]) -> None:
        if not is_valid_rating(rating):
            raise InvalidArgumentError("Rating must be between 1 and 5", "INVALID_RATING")

        if content is not None and len(content) > MAX_CONTENT_LENGTH:
            raise InvalidArgumentError(
                f"Comment cannot exceed {MAX_CONTENT_LENGTH} characters",
                "COMMENT_TOO_LONG",
            )

    @staticmethod
    def _require_book(uow: UnitOfWork, book_id: int) -> Book:
        book = uow.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError.book(book_id)
        return book

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
    def _require_review(uow: UnitOfWork, review_id: int) -> Review:
        review = uow.reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError.review(review_id)
        return review
