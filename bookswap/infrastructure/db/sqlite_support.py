"""
Helpers shared by the SQLite adapters: error translation and value codecs.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, Optional


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """
    Re-raise sqlite errors as the exceptions the ports document.

    Constraint violations become ValueError; any other database failure
    becomes RuntimeError.
    """
    try:
        yield
    except sqlite3.IntegrityError as e:
        raise ValueError(f"Constraint violated while {action}: {e}") from e
    except sqlite3.Error as e:
        raise RuntimeError(f"Database error while {action}: {e}") from e


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def to_decimal_text(value: Optional[Decimal]) -> Optional[str]:
    # Stored as text so that no precision is lost to REAL
    return str(value) if value is not None else None


def from_decimal_text(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def like_pattern(value: str) -> str:
    """Build a case-insensitive substring pattern for LIKE ... ESCAPE '\\'."""
    escaped = value.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def order_clause(sort_columns: dict, sort_by: str, direction: str) -> str:
    """
    Build an ORDER BY clause from a whitelisted column map.

    Ties are broken by id in the same direction so that paging is stable.
    """
    if sort_by not in sort_columns:
        raise ValueError(f"Unsupported sort field: '{sort_by}'")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unsupported sort direction: '{direction}'")

    keyword = direction.upper()
    return f"ORDER BY {sort_columns[sort_by]} {keyword}, id {keyword}"
