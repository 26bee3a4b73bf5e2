"""
SQLite implementation of the UnitOfWork port.

One unit = one connection = one transaction. Writing units start with
BEGIN IMMEDIATE, which takes the database write lock up front: two units
that both read a book's status and then change it cannot interleave, the
second one waits (up to the busy timeout) until the first has finished.
"""

import sqlite3
from typing import Callable, Optional

from bookswap.infrastructure.db.sqlite_book_catalog_repository import SqliteBookCatalogRepository
from bookswap.infrastructure.db.sqlite_exchange_repository import SqliteExchangeRepository
from bookswap.infrastructure.db.sqlite_review_repository import SqliteReviewRepository
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository


class SqliteUnitOfWork:
    """
    Scoped transaction exposing every repository over one connection.

    Nothing is persisted unless commit() is called; leaving the block
    without it, or through an exception, rolls everything back.
    """

    def __init__(
        self,
        connect: Callable[[], sqlite3.Connection],
        read_only: bool = False,
    ) -> None:
        self._connect = connect
        self._read_only = read_only
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> "SqliteUnitOfWork":
        conn = self._connect()
        try:
            conn.execute("BEGIN" if self._read_only else "BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            conn.close()
            raise RuntimeError(f"Could not start transaction: {e}") from e

        self._conn = conn
        self.books = SqliteBookCatalogRepository(conn)
        self.users = SqliteUserRepository(conn)
        self.exchanges = SqliteExchangeRepository(conn)
        self.reviews = SqliteReviewRepository(conn)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        try:
            if conn.in_transaction:
                conn.rollback()
        finally:
            conn.close()

    def commit(self) -> None:
        if self._conn is None:
            raise RuntimeError("Unit of work is not active")
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while committing: {e}") from e

    def rollback(self) -> None:
        if self._conn is None:
            raise RuntimeError("Unit of work is not active")
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while rolling back: {e}") from e
