"""Shared fixtures for vault tests: a real SQLite database, blob directory and manual clock."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shared.auth.password import SimpleHasher
from shared.auth.session_store import AuthSessionStore
from shared.clock import ManualClock
from shared.db import Database, SqliteSessionRepository, SqliteShareRepository
from shared.storage import LocalBlobStorage
from vault.shares.lifecycle import LifecycleCoordinator
from vault.shares.registry import ShareRegistry

if TYPE_CHECKING:
    from pathlib import Path

START = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def hasher() -> SimpleHasher:
    return SimpleHasher()


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "vault.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def share_repo(db: Database) -> SqliteShareRepository:
    return SqliteShareRepository(db)


@pytest.fixture
def session_store(db: Database, clock: ManualClock) -> AuthSessionStore:
    return AuthSessionStore(SqliteSessionRepository(db), clock, ttl_seconds=3600)


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def blobs(upload_dir: Path) -> LocalBlobStorage:
    return LocalBlobStorage(str(upload_dir))


@pytest.fixture
def registry(share_repo, blobs, hasher, clock) -> ShareRegistry:
    return ShareRegistry(share_repo, blobs, hasher, clock)


@pytest.fixture
def coordinator(share_repo, blobs, hasher, clock) -> LifecycleCoordinator:
    return LifecycleCoordinator(share_repo, blobs, hasher, clock, download_token_ttl_seconds=60)
