"""
SQLite implementation of the BookCatalogRepository port.

This adapter persists Book entities to the books table, handling
serialization/deserialization and enforcing the unique constraint on isbn.
Authors, genres and the condition report are stored as JSON text.
"""

import json
import sqlite3
from dataclasses import asdict
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional, Union

from bookswap.domain.entities import Book, BookStatus
from bookswap.domain.value_objects import (
    BookCondition,
    BookSearchFilters,
    ConditionGrade,
    Page,
    PageRequest,
)
from bookswap.infrastructure.db.sqlite_support import (
    from_decimal_text,
    from_iso,
    like_pattern,
    order_clause,
    to_decimal_text,
    to_iso,
    translate_errors,
)

_SORT_COLUMNS = {
    "created_at": "created_at",
    "title": "title COLLATE NOCASE",
    "publication_year": "publication_year",
    "estimated_price": "CAST(estimated_price AS REAL)",
}


class SqliteBookCatalogRepository:
    """
    Book store bound to the connection of one unit of work.

    Availability is only ever changed through set_status(), which is a
    compare-and-set when an expected status is given.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _book_to_row(self, book: Book) -> dict:
        """Convert a Book entity to a database row dict."""
        condition_json = None
        if book.condition is not None:
            condition_json = json.dumps(asdict(book.condition))

        return {
            "id": book.id,
            "owner_id": book.owner_id,
            "title": book.title,
            "authors": json.dumps(book.authors),
            "isbn": book.isbn,
            "description": book.description,
            "genres": json.dumps(book.genres or []),
            "language": book.language,
            "publication_year": book.publication_year,
            "publisher": book.publisher,
            "page_count": book.page_count,
            "cover_image_url": book.cover_image_url,
            "estimated_price": to_decimal_text(book.estimated_price),
            "condition": condition_json,
            "exchange_status": book.exchange_status.value,
            "version": book.version,
            "created_at": to_iso(book.created_at),
            "updated_at": to_iso(book.updated_at),
        }

    def _row_to_book(self, row: sqlite3.Row) -> Book:
        """Convert a database row to a Book entity."""
        condition = None
        if row["condition"]:
            cond_dict = json.loads(row["condition"])
            condition = BookCondition(
                rating=cond_dict.get("rating", 5),
                cover=ConditionGrade(cond_dict.get("cover", "EXCELLENT")),
                pages=ConditionGrade(cond_dict.get("pages", "EXCELLENT")),
                has_damage=cond_dict.get("has_damage", False),
                damage_description=cond_dict.get("damage_description"),
                is_complete=cond_dict.get("is_complete", True),
                has_highlighting=cond_dict.get("has_highlighting", False),
                has_notes=cond_dict.get("has_notes", False),
                description=cond_dict.get("description"),
            )

        return Book(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            authors=json.loads(row["authors"]),
            isbn=row["isbn"],
            description=row["description"],
            genres=json.loads(row["genres"]) if row["genres"] else [],
            language=row["language"],
            publication_year=row["publication_year"],
            publisher=row["publisher"],
            page_count=row["page_count"],
            cover_image_url=row["cover_image_url"],
            estimated_price=from_decimal_text(row["estimated_price"]),
            condition=condition,
            exchange_status=BookStatus(row["exchange_status"]),
            version=row["version"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def add(self, book: Book) -> Book:
        """Insert a new book and assign its id."""
        row = self._book_to_row(book)

        with translate_errors("adding book"):
            cursor = self._conn.execute("""
                INSERT INTO books
                (owner_id, title, authors, isbn, description, genres, language,
                 publication_year, publisher, page_count, cover_image_url,
                 estimated_price, condition, exchange_status, version,
                 created_at, updated_at)
                VALUES
                (:owner_id, :title, :authors, :isbn, :description, :genres, :language,
                 :publication_year, :publisher, :page_count, :cover_image_url,
                 :estimated_price, :condition, :exchange_status, :version,
                 :created_at, :updated_at)
            """, row)

        book.id = cursor.lastrowid
        return book

    def get_by_id(self, book_id: int) -> Optional[Book]:
        """Retrieve a book by its id."""
        with translate_errors(f"loading book {book_id}"):
            row = self._conn.execute(
                "SELECT * FROM books WHERE id = ?",
                (book_id,)
            ).fetchone()

        if row is None:
            return None

        return self._row_to_book(row)

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        with translate_errors(f"loading book by isbn {isbn}"):
            row = self._conn.execute(
                "SELECT * FROM books WHERE isbn = ?",
                (isbn,)
            ).fetchone()

        return self._row_to_book(row) if row is not None else None

    def update(self, book: Book) -> None:
        """Persist descriptive fields; owner, availability and version are untouched."""
        row = self._book_to_row(book)

        with translate_errors(f"updating book {book.id}"):
            self._conn.execute("""
                UPDATE books SET
                    title = :title,
                    authors = :authors,
                    isbn = :isbn,
                    description = :description,
                    genres = :genres,
                    language = :language,
                    publication_year = :publication_year,
                    publisher = :publisher,
                    page_count = :page_count,
                    cover_image_url = :cover_image_url,
                    estimated_price = :estimated_price,
                    condition = :condition,
                    updated_at = :updated_at
                WHERE id = :id
            """, row)

    def set_status(
        self,
        book_id: int,
        status: BookStatus,
        expected: Union[BookStatus, Iterable[BookStatus], None] = None,
    ) -> bool:
        """Change availability, optionally only if the current status matches."""
        sql = (
            "UPDATE books SET exchange_status = ?, version = version + 1, updated_at = ? "
            "WHERE id = ?"
        )
        params: list = [status.value, datetime.now(UTC).isoformat(), book_id]

        if expected is not None:
            if isinstance(expected, BookStatus):
                expected = [expected]
            allowed = [s.value for s in expected]
            sql += f" AND exchange_status IN ({', '.join('?' * len(allowed))})"
            params.extend(allowed)

        with translate_errors(f"setting status of book {book_id}"):
            cursor = self._conn.execute(sql, params)

        return cursor.rowcount == 1

    def delete(self, book_id: int) -> bool:
        """Delete a book from the catalog. Returns True if deleted."""
        with translate_errors(f"deleting book {book_id}"):
            cursor = self._conn.execute(
                "DELETE FROM books WHERE id = ?",
                (book_id,)
            )
        return cursor.rowcount > 0

    def search(self, filters: BookSearchFilters, page_request: PageRequest) -> Page[Book]:
        """Filter the catalog; every condition must hold."""
        clauses: List[str] = []
        params: list = []

        if filters.title:
            clauses.append("LOWER(title) LIKE ? ESCAPE '\\'")
            params.append(like_pattern(filters.title))

        if filters.author:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(books.authors) a "
                "WHERE LOWER(a.value) LIKE ? ESCAPE '\\')"
            )
            params.append(like_pattern(filters.author))

        if filters.genre:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(books.genres) g "
                "WHERE LOWER(g.value) = ?)"
            )
            params.append(filters.genre.lower())

        if filters.language:
            clauses.append("LOWER(language) = ?")
            params.append(filters.language.lower())

        if filters.min_year is not None:
            clauses.append("publication_year >= ?")
            params.append(filters.min_year)

        if filters.max_year is not None:
            clauses.append("publication_year <= ?")
            params.append(filters.max_year)

        if filters.min_price is not None:
            clauses.append("CAST(estimated_price AS REAL) >= ?")
            params.append(float(filters.min_price))

        if filters.max_price is not None:
            clauses.append("CAST(estimated_price AS REAL) <= ?")
            params.append(float(filters.max_price))

        if filters.owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(filters.owner_id)

        if filters.exclude_owner_id is not None:
            clauses.append("owner_id != ?")
            params.append(filters.exclude_owner_id)

        if filters.exchange_status is not None:
            clauses.append("exchange_status = ?")
            params.append(filters.exchange_status)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = order_clause(_SORT_COLUMNS, page_request.sort_by, page_request.direction)

        with translate_errors("searching books"):
            total = self._conn.execute(
                f"SELECT COUNT(*) AS cnt FROM books {where}", params
            ).fetchone()["cnt"]
            rows = self._conn.execute(
                f"SELECT * FROM books {where} {order} LIMIT ? OFFSET ?",
                [*params, page_request.size, page_request.offset],
            ).fetchall()

        return Page(
            items=[self._row_to_book(row) for row in rows],
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    def count_by_status(self) -> Dict[BookStatus, int]:
        counts = {status: 0 for status in BookStatus}

        with translate_errors("counting books"):
            rows = self._conn.execute(
                "SELECT exchange_status, COUNT(*) AS cnt FROM books GROUP BY exchange_status"
            ).fetchall()

        for row in rows:
            counts[BookStatus(row["exchange_status"])] = row["cnt"]
        return counts
