"""
SQLite implementation of the ExchangeRepository port (the exchange ledger).

Rows are never deleted. book_id, owner_id and requester_id are written
once on insert and never updated.
"""

import sqlite3
from typing import List, Optional

from bookswap.domain.entities import Exchange, ExchangeStatus, ExchangeType
from bookswap.domain.value_objects import Page, PageRequest
from bookswap.infrastructure.db.sqlite_support import (
    from_decimal_text,
    from_iso,
    order_clause,
    to_decimal_text,
    to_iso,
    translate_errors,
)

_SORT_COLUMNS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "status": "status",
}


class SqliteExchangeRepository:
    """Exchange ledger bound to the connection of one unit of work."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _exchange_to_row(self, exchange: Exchange) -> dict:
        return {
            "id": exchange.id,
            "book_id": exchange.book_id,
            "owner_id": exchange.owner_id,
            "requester_id": exchange.requester_id,
            "status": exchange.status.value,
            "exchange_type": exchange.exchange_type.value,
            "message": exchange.message,
            "offered_price": to_decimal_text(exchange.offered_price),
            "owner_response": exchange.owner_response,
            "exchange_date": to_iso(exchange.exchange_date),
            "meeting_location": exchange.meeting_location,
            "meeting_date": to_iso(exchange.meeting_date),
            "completed": 1 if exchange.completed else 0,
            "created_at": to_iso(exchange.created_at),
            "updated_at": to_iso(exchange.updated_at),
        }

    def _row_to_exchange(self, row: sqlite3.Row) -> Exchange:
        return Exchange(
            id=row["id"],
            book_id=row["book_id"],
            owner_id=row["owner_id"],
            requester_id=row["requester_id"],
            status=ExchangeStatus(row["status"]),
            exchange_type=ExchangeType(row["exchange_type"]),
            message=row["message"],
            offered_price=from_decimal_text(row["offered_price"]),
            owner_response=row["owner_response"],
            exchange_date=from_iso(row["exchange_date"]),
            meeting_location=row["meeting_location"],
            meeting_date=from_iso(row["meeting_date"]),
            completed=bool(row["completed"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def _fetch_all(self, action: str, sql: str, params: tuple) -> List[Exchange]:
        with translate_errors(action):
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_exchange(row) for row in rows]

    def add(self, exchange: Exchange) -> Exchange:
        with translate_errors(f"adding exchange for book {exchange.book_id}"):
            cursor = self._conn.execute("""
                INSERT INTO exchanges
                (book_id, owner_id, requester_id, status, exchange_type, message,
                 offered_price, owner_response, exchange_date, meeting_location,
                 meeting_date, completed, created_at, updated_at)
                VALUES
                (:book_id, :owner_id, :requester_id, :status, :exchange_type, :message,
                 :offered_price, :owner_response, :exchange_date, :meeting_location,
                 :meeting_date, :completed, :created_at, :updated_at)
            """, self._exchange_to_row(exchange))

        exchange.id = cursor.lastrowid
        return exchange

    def get_by_id(self, exchange_id: int) -> Optional[Exchange]:
        with translate_errors(f"loading exchange {exchange_id}"):
            row = self._conn.execute(
                "SELECT * FROM exchanges WHERE id = ?", (exchange_id,)
            ).fetchone()
        return self._row_to_exchange(row) if row is not None else None

    def update(self, exchange: Exchange) -> None:
        with translate_errors(f"updating exchange {exchange.id}"):
            self._conn.execute("""
                UPDATE exchanges SET
                    status = :status,
                    owner_response = :owner_response,
                    exchange_date = :exchange_date,
                    meeting_location = :meeting_location,
                    meeting_date = :meeting_date,
                    completed = :completed,
                    updated_at = :updated_at
                WHERE id = :id
            """, self._exchange_to_row(exchange))

    def find_by_requester(self, requester_id: int) -> List[Exchange]:
        return self._fetch_all(
            f"loading exchanges requested by user {requester_id}",
            "SELECT * FROM exchanges WHERE requester_id = ? ORDER BY created_at DESC, id DESC",
            (requester_id,),
        )

    def find_by_participant(self, user_id: int, page_request: PageRequest) -> Page[Exchange]:
        order = order_clause(_SORT_COLUMNS, page_request.sort_by, page_request.direction)

        with translate_errors(f"loading exchanges of user {user_id}"):
            total = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM exchanges WHERE owner_id = ? OR requester_id = ?",
                (user_id, user_id),
            ).fetchone()["cnt"]
            rows = self._conn.execute(
                f"SELECT * FROM exchanges WHERE owner_id = ? OR requester_id = ? "
                f"{order} LIMIT ? OFFSET ?",
                (user_id, user_id, page_request.size, page_request.offset),
            ).fetchall()

        return Page(
            items=[self._row_to_exchange(row) for row in rows],
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    def find_pending_for_owner(self, owner_id: int) -> List[Exchange]:
        return self._fetch_all(
            f"loading incoming requests of user {owner_id}",
            "SELECT * FROM exchanges WHERE owner_id = ? AND status = ? "
            "ORDER BY created_at DESC, id DESC",
            (owner_id, ExchangeStatus.PENDING.value),
        )

    def find_by_book(self, book_id: int) -> List[Exchange]:
        return self._fetch_all(
            f"loading exchanges of book {book_id}",
            "SELECT * FROM exchanges WHERE book_id = ? ORDER BY created_at DESC, id DESC",
            (book_id,),
        )
