"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

# Timestamps are epoch seconds (REAL) so expiry comparisons run in SQL.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    data TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email
    ON users (email COLLATE NOCASE);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    token_hash TEXT NOT NULL UNIQUE,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_expires_at
    ON sessions (expires_at);

CREATE TABLE IF NOT EXISTS shares (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL CHECK (kind IN ('text', 'file')),
    text TEXT,
    file TEXT,
    secret_hash TEXT,
    owner_id TEXT,
    owner_only INTEGER NOT NULL DEFAULT 0,
    one_shot INTEGER NOT NULL DEFAULT 0,
    view_limit INTEGER CHECK (view_limit IS NULL OR view_limit >= 1),
    view_count INTEGER NOT NULL DEFAULT 0,
    expires_at REAL NOT NULL,
    delete_token_hash TEXT NOT NULL,
    download_token_hash TEXT,
    download_token_expires_at REAL,
    delete_after_download INTEGER NOT NULL DEFAULT 0,
    created_at REAL NOT NULL,
    CHECK (view_limit IS NULL OR view_count <= view_limit)
);

CREATE INDEX IF NOT EXISTS idx_shares_owner_created
    ON shares (owner_id, created_at DESC) WHERE owner_id IS NOT NULL;

CREATE INDEX IF NOT EXISTS idx_shares_expires_at
    ON shares (expires_at);
"""


class Database:
    """SQLite database wrapper with schema management."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        parent = Path(self._path).parent
        parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)

        self._harden_permissions()
        logger.info("database connected", path=self._path)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on POSIX systems (best effort).

        Hardens the main DB file and WAL/SHM sibling files created by WAL mode,
        since they also contain password hashes and share contents.
        """
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))
