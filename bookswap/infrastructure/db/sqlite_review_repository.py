"""
SQLite implementation of the ReviewRepository port.
"""

import sqlite3
from typing import List, Optional

from bookswap.domain.entities import Review
from bookswap.domain.value_objects import Page, PageRequest, RatingStats
from bookswap.infrastructure.db.sqlite_support import (
    from_iso,
    order_clause,
    to_iso,
    translate_errors,
)

_SORT_COLUMNS = {
    "created_at": "created_at",
    "rating": "rating",
}


class SqliteReviewRepository:
    """Review store bound to the connection of one unit of work."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _review_to_row(self, review: Review) -> dict:
        return {
            "id": review.id,
            "book_id": review.book_id,
            "user_id": review.user_id,
            "rating": review.rating,
            "title": review.title,
            "content": review.content,
            "approved": 1 if review.approved else 0,
            "created_at": to_iso(review.created_at),
            "updated_at": to_iso(review.updated_at),
        }

    def _row_to_review(self, row: sqlite3.Row) -> Review:
        return Review(
            id=row["id"],
            book_id=row["book_id"],
            user_id=row["user_id"],
            rating=row["rating"],
            title=row["title"],
            content=row["content"],
            approved=bool(row["approved"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def add(self, review: Review) -> Review:
        with translate_errors(f"adding review of book {review.book_id}"):
            cursor = self._conn.execute("""
                INSERT INTO reviews
                (book_id, user_id, rating, title, content, approved, created_at, updated_at)
                VALUES
                (:book_id, :user_id, :rating, :title, :content, :approved, :created_at, :updated_at)
            """, self._review_to_row(review))

        review.id = cursor.lastrowid
        return review

    def get_by_id(self, review_id: int) -> Optional[Review]:
        with translate_errors(f"loading review {review_id}"):
            row = self._conn.execute(
                "SELECT * FROM reviews WHERE id = ?", (review_id,)
            ).fetchone()
        return self._row_to_review(row) if row is not None else None

    def update(self, review: Review) -> None:
        with translate_errors(f"updating review {review.id}"):
            self._conn.execute("""
                UPDATE reviews SET
                    rating = :rating,
                    title = :title,
                    content = :content,
                    approved = :approved,
                    updated_at = :updated_at
                WHERE id = :id
            """, self._review_to_row(review))

    def delete(self, review_id: int) -> bool:
        with translate_errors(f"deleting review {review_id}"):
            cursor = self._conn.execute("DELETE FROM reviews WHERE id = ?", (review_id,))
        return cursor.rowcount > 0

    def find_approved_by_book(self, book_id: int, page_request: PageRequest) -> Page[Review]:
        order = order_clause(_SORT_COLUMNS, page_request.sort_by, page_request.direction)

        with translate_errors(f"loading reviews of book {book_id}"):
            total = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM reviews WHERE book_id = ? AND approved = 1",
                (book_id,),
            ).fetchone()["cnt"]
            rows = self._conn.execute(
                f"SELECT * FROM reviews WHERE book_id = ? AND approved = 1 "
                f"{order} LIMIT ? OFFSET ?",
                (book_id, page_request.size, page_request.offset),
            ).fetchall()

        return Page(
            items=[self._row_to_review(row) for row in rows],
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    def find_by_user(self, user_id: int) -> List[Review]:
        with translate_errors(f"loading reviews by user {user_id}"):
            rows = self._conn.execute(
                "SELECT * FROM reviews WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_review(row) for row in rows]

    def find_latest(self, limit: int) -> List[Review]:
        """Most recent approved reviews across all books."""
        with translate_errors("loading latest reviews"):
            rows = self._conn.execute(
                "SELECT * FROM reviews WHERE approved = 1 "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_review(row) for row in rows]

    def rating_stats(self, book_id: int) -> RatingStats:
        with translate_errors(f"computing rating of book {book_id}"):
            row = self._conn.execute(
                "SELECT AVG(rating) AS avg_rating, COUNT(*) AS cnt "
                "FROM reviews WHERE book_id = ? AND approved = 1",
                (book_id,),
            ).fetchone()

        count = row["cnt"]
        average = round(row["avg_rating"], 2) if count else None
        return RatingStats(average=average, count=count)
