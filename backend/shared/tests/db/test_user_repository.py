"""Tests for SqliteUserRepository."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shared.auth.models import User
from shared.db.connection import Database
from shared.db.user_repository import SqliteUserRepository

if TYPE_CHECKING:
    from pathlib import Path

FAKE_BCRYPT_HASH = "$2b$12$fakehash"
CREATED = datetime(2026, 1, 1, tzinfo=UTC)


def _user(user_id: str = "u1", email: str = "alice@example.com") -> User:
    return User(user_id=user_id, email=email, display_name="Alice", password_hash=FAKE_BCRYPT_HASH, created_at=CREATED)


@pytest.fixture
def repo(tmp_path: Path):
    db = Database(tmp_path / "test.db")
    db.connect()
    yield SqliteUserRepository(db)
    db.close()


class TestCreateUser:
    async def test_create_and_get_by_id(self, repo):
        await repo.create_user(_user())

        found = await repo.get_by_id("u1")
        assert found is not None
        assert found.email == "alice@example.com"
        assert found.display_name == "Alice"
        assert found.created_at == CREATED

    async def test_duplicate_id_raises(self, repo):
        await repo.create_user(_user())
        with pytest.raises(ValueError, match="already exists"):
            await repo.create_user(_user(email="other@example.com"))

    async def test_duplicate_email_raises(self, repo):
        await repo.create_user(_user())
        with pytest.raises(ValueError, match="Email already registered"):
            await repo.create_user(_user(user_id="u2"))


class TestLookup:
    async def test_get_by_email_is_case_insensitive(self, repo):
        await repo.create_user(_user())

        found = await repo.get_by_email("  ALICE@Example.com ")
        assert found is not None
        assert found.user_id == "u1"

    async def test_missing_user_returns_none(self, repo):
        assert await repo.get_by_email("nobody@example.com") is None
        assert await repo.get_by_id("missing") is None
