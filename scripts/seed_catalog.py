#!/usr/bin/env python3
"""
Catalog seeding script.

Registers an owner (if needed) and lists one book per ISBN, using Google
Books to fill in title, authors and the other bibliographic fields.

Usage:
    python -m scripts.seed_catalog --owner alice --email alice@example.com \
        --isbn 9780441013593 --isbn 0-345-39180-2
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

from bookswap.domain.exceptions import BookSwapError, NotFoundError
from bookswap.domain.services import CatalogService, UserService
from bookswap.domain.value_objects import BookDetails
from bookswap.infrastructure.db.sqlite_database import SqliteDatabase
from bookswap.infrastructure.external.google_books_client import GoogleBooksClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(os.getenv("DB_PATH", "data/bookswap.db"))


def ensure_owner(users: UserService, username: str, email: str, city: str) -> None:
    """Register the owner unless they already exist."""
    try:
        users.get_user(username)
        logger.info(f"Owner '{username}' already registered")
    except NotFoundError:
        users.register(username, email, first_name=username, last_name="Seed", city=city)


def main(owner: str, email: str, isbns: List[str], db_path: Path, city: str = "Unknown") -> int:
    """
    Main entry point for the seeding script.

    Args:
        owner: Username that will own the seeded books
        email: Email used if the owner has to be registered
        isbns: ISBNs to look up and list
        db_path: SQLite database file

    Returns:
        Number of books listed
    """
    logger.info(f"Seeding {len(isbns)} book(s) for '{owner}' into {db_path}")

    database = SqliteDatabase(db_path)
    users = UserService(database.unit_of_work)
    catalog = CatalogService(
        database.unit_of_work,
        isbn_provider=GoogleBooksClient(api_key=os.getenv("GOOGLE_BOOKS_API_KEY")),
    )

    try:
        ensure_owner(users, owner, email, city)
    except BookSwapError as e:
        logger.error(f"Cannot register owner '{owner}': {e}")
        sys.exit(1)

    listed = 0
    for isbn in isbns:
        try:
            info = catalog.lookup_isbn(isbn)
            book = catalog.create_book(owner, BookDetails(
                title=info.title,
                authors=info.authors,
                isbn=isbn,
                description=info.description,
                genres=info.categories,
                language=info.language,
                publication_year=info.publication_year,
                publisher=info.publisher,
                page_count=info.page_count,
                cover_image_url=info.cover_image_url,
            ))
        except BookSwapError as e:
            logger.warning(f"Skipping ISBN {isbn}: {e}")
            continue

        listed += 1
        logger.info(f"Listed '{book.title}' as book {book.id}")

    logger.info(f"Seeding finished: {listed}/{len(isbns)} book(s) listed")
    return listed


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the catalog from ISBNs via Google Books")
    parser.add_argument(
        "--owner", "-o",
        type=str,
        required=True,
        help="Username owning the seeded books"
    )
    parser.add_argument(
        "--email", "-e",
        type=str,
        required=True,
        help="Email for the owner if it has to be registered"
    )
    parser.add_argument(
        "--isbn", "-i",
        action="append",
        required=True,
        help="ISBN to list (repeatable)"
    )
    parser.add_argument(
        "--city",
        type=str,
        default="Unknown",
        help="City for the owner if it has to be registered"
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        default=DEFAULT_DB_PATH,
        help=f"SQLite database file (default: {DEFAULT_DB_PATH})"
    )

    args = parser.parse_args()
    listed = main(args.owner, args.email, args.isbn, args.db_path, args.city)
    sys.exit(0 if listed else 1)
