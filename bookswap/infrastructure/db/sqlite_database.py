"""
SQLite database holding every marketplace store.

Users, books, exchanges and reviews live in one database file so that a
single transaction can span them. Connections are opened per unit of work;
the database-level write lock taken by BEGIN IMMEDIATE serializes writers.
"""

import logging
import sqlite3
from pathlib import Path

from bookswap.infrastructure.db.sqlite_unit_of_work import SqliteUnitOfWork

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    city TEXT,
    phone_number TEXT,
    bio TEXT,
    role TEXT NOT NULL DEFAULT 'USER',
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL REFERENCES users(id),
    title TEXT NOT NULL,
    authors TEXT NOT NULL,
    isbn TEXT UNIQUE,
    description TEXT,
    genres TEXT NOT NULL DEFAULT '[]',
    language TEXT,
    publication_year INTEGER,
    publisher TEXT,
    page_count INTEGER,
    cover_image_url TEXT,
    estimated_price TEXT,
    condition TEXT,
    exchange_status TEXT NOT NULL DEFAULT 'AVAILABLE'
        CHECK (exchange_status IN ('AVAILABLE', 'RESERVED', 'EXCHANGED', 'NOT_AVAILABLE')),
    version INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS exchanges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id),
    owner_id INTEGER NOT NULL REFERENCES users(id),
    requester_id INTEGER NOT NULL REFERENCES users(id),
    status TEXT NOT NULL
        CHECK (status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'COMPLETED', 'CANCELLED')),
    exchange_type TEXT NOT NULL DEFAULT 'BOOK_FOR_BOOK',
    message TEXT,
    offered_price TEXT,
    owner_response TEXT,
    exchange_date TEXT,
    meeting_location TEXT,
    meeting_date TEXT,
    completed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (owner_id != requester_id)
);

CREATE TABLE IF NOT EXISTS reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(id),
    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
    title TEXT,
    content TEXT,
    approved INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_books_owner ON books(owner_id);
CREATE INDEX IF NOT EXISTS idx_books_status ON books(exchange_status);
CREATE INDEX IF NOT EXISTS idx_exchanges_book ON exchanges(book_id);
CREATE INDEX IF NOT EXISTS idx_exchanges_owner_status ON exchanges(owner_id, status);
CREATE INDEX IF NOT EXISTS idx_exchanges_requester ON exchanges(requester_id);
CREATE INDEX IF NOT EXISTS idx_reviews_book_approved ON reviews(book_id, approved);
CREATE INDEX IF NOT EXISTS idx_reviews_user ON reviews(user_id);
"""


class SqliteDatabase:
    """
    Owns the database file and hands out units of work over it.

    Usage:
        database = SqliteDatabase(Path("data/bookswap.db"))
        with database.unit_of_work() as uow:
            uow.books.add(book)
            uow.commit()
    """

    def __init__(self, db_path: Path, busy_timeout: float = 5.0) -> None:
        """
        Initialize the database, creating the file and schema if needed.

        Args:
            db_path: Location of the SQLite file
            busy_timeout: Seconds a writer waits for the write lock before
                giving up with "database is locked"
        """
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        """
        Open a connection in manual transaction mode.

        isolation_level=None stops the sqlite3 module from issuing its own
        BEGIN statements; the unit of work starts transactions explicitly.
        """
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._busy_timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def unit_of_work(self, read_only: bool = False) -> SqliteUnitOfWork:
        return SqliteUnitOfWork(self.connect, read_only=read_only)

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            conn = self.connect()
            try:
                conn.execute("SELECT 1").fetchone()
            finally:
                conn.close()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        conn = self.connect()
        try:
            # Readers never wait on an open write transaction in WAL mode
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to initialize database schema at {self._db_path}: {e}") from e
        finally:
            conn.close()
        logger.info(f"Database ready at {self._db_path}")
