"""SQLite-backed share repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.clock import from_epoch, to_epoch
from shared.dal.models import FilePayload, Share, ShareKind
from shared.dal.share_repository import ShareRepository

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()

_COLUMNS = (
    "id, kind, text, file, secret_hash, owner_id, owner_only, one_shot, view_limit, view_count, "
    "expires_at, delete_token_hash, download_token_hash, download_token_expires_at, "
    "delete_after_download, created_at"
)


def _row_to_share(row: tuple) -> Share:
    file_json = row[3]
    token_expiry = row[13]
    return Share(
        share_id=row[0],
        kind=ShareKind(row[1]),
        text=row[2],
        file=FilePayload.model_validate_json(file_json) if file_json is not None else None,
        secret_hash=row[4],
        owner_id=row[5],
        owner_only=bool(row[6]),
        one_shot=bool(row[7]),
        view_limit=row[8],
        view_count=row[9],
        expires_at=from_epoch(row[10]),
        delete_token_hash=row[11],
        download_token_hash=row[12],
        download_token_expires_at=from_epoch(token_expiry) if token_expiry is not None else None,
        delete_after_download=bool(row[14]),
        created_at=from_epoch(row[15]),
    )


class SqliteShareRepository(ShareRepository):
    """SQLite implementation of ShareRepository.

    Writes are serialized by an asyncio lock; every state transition is a
    single conditional UPDATE or DELETE whose rowcount tells the caller
    whether it won.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_share(self, share: Share) -> None:
        async with self._lock:
            try:
                self._db.connection.execute(
                    f"INSERT INTO shares ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                    (
                        share.share_id,
                        share.kind.value,
                        share.text,
                        share.file.model_dump_json() if share.file is not None else None,
                        share.secret_hash,
                        share.owner_id,
                        int(share.owner_only),
                        int(share.one_shot),
                        share.view_limit,
                        share.view_count,
                        to_epoch(share.expires_at),
                        share.delete_token_hash,
                        share.download_token_hash,
                        to_epoch(share.download_token_expires_at) if share.download_token_expires_at else None,
                        int(share.delete_after_download),
                        to_epoch(share.created_at),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                raise ValueError(f"Share '{share.share_id}' already exists") from exc

    async def get_share(self, share_id: str) -> Share | None:
        row = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM shares WHERE id = ?",  # noqa: S608
            (share_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_share(row)

    async def delete_share(self, share_id: str) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute("DELETE FROM shares WHERE id = ?", (share_id,))
            self._db.connection.commit()
            return cursor.rowcount > 0

    async def list_by_owner(self, owner_id: str) -> list[Share]:
        rows = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM shares WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",  # noqa: S608
            (owner_id,),
        ).fetchall()
        return [_row_to_share(row) for row in rows]

    async def list_expired(self, now: datetime) -> list[Share]:
        rows = self._db.connection.execute(
            f"SELECT {_COLUMNS} FROM shares WHERE expires_at < ?",  # noqa: S608
            (to_epoch(now),),
        ).fetchall()
        return [_row_to_share(row) for row in rows]

    async def record_view(
        self,
        share_id: str,
        *,
        expected_view_count: int,
        download_token_hash: str | None = None,
        download_token_expires_at: datetime | None = None,
        delete_after_download: bool = False,
    ) -> bool:
        assignments = ["view_count = view_count + 1"]
        params: list[object] = []
        if download_token_hash is not None:
            if download_token_expires_at is None:
                raise ValueError("download_token_expires_at is required with a download token")
            assignments.append("download_token_hash = ?")
            assignments.append("download_token_expires_at = ?")
            params.extend([download_token_hash, to_epoch(download_token_expires_at)])
        if delete_after_download:
            assignments.append("delete_after_download = 1")
        params.extend([share_id, expected_view_count])

        async with self._lock:
            cursor = self._db.connection.execute(
                f"UPDATE shares SET {', '.join(assignments)} WHERE id = ? AND view_count = ? "  # noqa: S608
                "AND (view_limit IS NULL OR view_count < view_limit) AND (one_shot = 0 OR view_count = 0)",
                params,
            )
            self._db.connection.commit()
            won = cursor.rowcount > 0
        if not won:
            logger.debug("view update lost race", share_id=share_id, expected_view_count=expected_view_count)
        return won

    async def delete_if_unviewed_since(self, share_id: str, *, expected_view_count: int) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute(
                "DELETE FROM shares WHERE id = ? AND view_count = ?",
                (share_id, expected_view_count),
            )
            self._db.connection.commit()
            return cursor.rowcount > 0

    async def claim_download_token(self, share_id: str, *, token_hash: str, now: datetime) -> bool:
        async with self._lock:
            cursor = self._db.connection.execute(
                "UPDATE shares SET download_token_hash = NULL, download_token_expires_at = NULL "
                "WHERE id = ? AND download_token_hash = ? AND download_token_expires_at >= ?",
                (share_id, token_hash, to_epoch(now)),
            )
            self._db.connection.commit()
            return cursor.rowcount > 0
