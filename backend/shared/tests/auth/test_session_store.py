"""Tests for AuthSessionStore."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shared.auth.session_store import AuthSessionStore, hash_token
from shared.clock import ManualClock
from shared.db import Database, SqliteSessionRepository

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def clock():
    return ManualClock(datetime(2026, 3, 1, tzinfo=UTC))


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def store(db, clock):
    return AuthSessionStore(SqliteSessionRepository(db), clock, ttl_seconds=3600)


class TestIssue:
    async def test_returns_token_and_absolute_expiry(self, store, clock):
        issued = await store.issue("user-1")

        assert issued.token
        assert issued.session.user_id == "user-1"
        assert issued.session.created_at == clock.now()
        assert (issued.expires_at - clock.now()).total_seconds() == 3600

    async def test_only_hash_is_persisted(self, store, db):
        issued = await store.issue("user-1")

        rows = db.connection.execute("SELECT token_hash FROM sessions").fetchall()
        assert rows == [(hashlib.sha256(issued.token.encode()).hexdigest(),)]
        assert issued.token not in str(rows)

    async def test_tokens_are_unique(self, store):
        first = await store.issue("user-1")
        second = await store.issue("user-1")
        assert first.token != second.token
        assert first.session.session_id != second.session.session_id


class TestResolve:
    async def test_resolves_valid_token(self, store):
        issued = await store.issue("user-1")

        session = await store.resolve(issued.token)

        assert session is not None
        assert session.user_id == "user-1"

    async def test_unknown_or_missing_token(self, store):
        assert await store.resolve("not-a-token") is None
        assert await store.resolve(None) is None
        assert await store.resolve("") is None

    async def test_expired_session_is_inert_before_sweep(self, store, clock):
        issued = await store.issue("user-1")

        clock.advance(3600)

        assert await store.resolve(issued.token) is None

    async def test_revoked_session_no_longer_resolves(self, store):
        issued = await store.issue("user-1")

        await store.revoke(issued.session.session_id)

        assert await store.resolve(issued.token) is None


class TestSweep:
    async def test_removes_expired_sessions(self, store, clock, db):
        await store.issue("user-1")
        clock.advance(1800)
        keep = await store.issue("user-2")
        clock.advance(1801)

        removed = await store.sweep()

        assert removed == 1
        assert await store.resolve(keep.token) is not None

    async def test_nothing_to_sweep(self, store):
        await store.issue("user-1")
        assert await store.sweep() == 0


def test_hash_token_is_sha256_hex():
    assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()
