"""SQLite-backed identity repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import User, normalize_email
from shared.dal.user_repository import UserRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteUserRepository(UserRepository):
    """SQLite implementation of UserRepository.

    Uses a single INSERT under an asyncio lock and relies on the unique
    email index, mapping IntegrityError to domain ValueError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_user(self, user: User) -> None:
        """Insert a user. Raises ValueError on duplicate id or email."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO users (id, email, data) VALUES (?, ?, ?)",
                    (user.user_id, user.email, user.model_dump_json()),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                error_msg = str(exc).lower()
                if "users.id" in error_msg:
                    raise ValueError(f"User with id '{user.user_id}' already exists") from exc
                if "users.email" in error_msg or "idx_users_email" in error_msg:
                    raise ValueError("Email already registered") from exc
                raise ValueError(str(exc)) from exc  # pragma: no cover

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive)."""
        row = self._db.connection.execute(
            "SELECT data FROM users WHERE email = ? COLLATE NOCASE",
            (normalize_email(email),),
        ).fetchone()
        if row is None:
            return None
        return User.model_validate(json.loads(row[0]))

    async def get_by_id(self, user_id: str) -> User | None:
        row = self._db.connection.execute("SELECT data FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return User.model_validate(json.loads(row[0]))
