"""SQLite-backed session repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

from shared.auth.models import AuthSession
from shared.clock import from_epoch, to_epoch
from shared.dal.session_repository import SessionRepository

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

_COLUMNS = "id, user_id, token_hash, created_at, expires_at"


def _row_to_session(row: sqlite3.Row | tuple) -> AuthSession:
    return AuthSession(
        session_id=row[0],
        user_id=row[1],
        token_hash=row[2],
        created_at=from_epoch(row[3]),
        expires_at=from_epoch(row[4]),
    )


class SqliteSessionRepository(SessionRepository):
    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_session(self, session: AuthSession) -> None:
        async with self._lock:
            try:
                self._db.connection.execute(
                    f"INSERT INTO sessions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",  # noqa: S608
                    (
                        session.session_id,
                        session.user_id,
                        session.token_hash,
                        to_epoch(session.created_at),
                        to_epoch(session.expires_at),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                raise ValueError(f"Session '{session.session_id}' already exists") from exc

    async def get_by_token_hash(self, token_hash: str) -> AuthSession | None:
        row = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM sessions WHERE token_hash = ?",  # noqa: S608
            (token_hash,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_session(row)

    async def delete_session(self, session_id: str) -> None:
        async with self._lock:
            self._db.connection.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            self._db.connection.commit()

    async def delete_expired(self, now: datetime) -> int:
        """Delete sessions whose expires_at is strictly before now. Return the count."""
        async with self._lock:
            cursor = self._db.connection.execute("DELETE FROM sessions WHERE expires_at < ?", (to_epoch(now),))
            self._db.connection.commit()
            return cursor.rowcount
