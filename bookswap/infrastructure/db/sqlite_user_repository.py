"""
SQLite implementation of the UserRepository port.
"""

import sqlite3
from typing import Optional

from bookswap.domain.entities import Role, User
from bookswap.infrastructure.db.sqlite_support import from_iso, to_iso, translate_errors


class SqliteUserRepository:
    """Identity store bound to the connection of one unit of work."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _user_to_row(self, user: User) -> dict:
        return {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "city": user.city,
            "phone_number": user.phone_number,
            "bio": user.bio,
            "role": user.role.value,
            "enabled": 1 if user.enabled else 0,
            "created_at": to_iso(user.created_at),
            "updated_at": to_iso(user.updated_at),
        }

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            city=row["city"],
            phone_number=row["phone_number"],
            bio=row["bio"],
            role=Role(row["role"]),
            enabled=bool(row["enabled"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def add(self, user: User) -> User:
        """Insert a new user; a taken username or email raises ValueError."""
        with translate_errors(f"adding user '{user.username}'"):
            cursor = self._conn.execute("""
                INSERT INTO users
                (username, email, first_name, last_name, city, phone_number, bio,
                 role, enabled, created_at, updated_at)
                VALUES
                (:username, :email, :first_name, :last_name, :city, :phone_number, :bio,
                 :role, :enabled, :created_at, :updated_at)
            """, self._user_to_row(user))

        user.id = cursor.lastrowid
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        with translate_errors(f"loading user {user_id}"):
            row = self._conn.execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return self._row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> Optional[User]:
        with translate_errors(f"loading user '{username}'"):
            row = self._conn.execute(
                "SELECT * FROM users WHERE username = ?", (username,)
            ).fetchone()
        return self._row_to_user(row) if row is not None else None

    def exists_by_username(self, username: str) -> bool:
        with translate_errors(f"checking username '{username}'"):
            row = self._conn.execute(
                "SELECT 1 FROM users WHERE username = ?", (username,)
            ).fetchone()
        return row is not None

    def exists_by_email(self, email: str) -> bool:
        with translate_errors("checking email"):
            row = self._conn.execute(
                "SELECT 1 FROM users WHERE email = ?", (email,)
            ).fetchone()
        return row is not None

    def update(self, user: User) -> None:
        with translate_errors(f"updating user '{user.username}'"):
            self._conn.execute("""
                UPDATE users SET
                    email = :email,
                    first_name = :first_name,
                    last_name = :last_name,
                    city = :city,
                    phone_number = :phone_number,
                    bio = :bio,
                    role = :role,
                    enabled = :enabled,
                    updated_at = :updated_at
                WHERE id = :id
            """, self._user_to_row(user))
