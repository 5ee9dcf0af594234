"""Tests for AuthSettings configuration."""

import pytest
from pydantic import ValidationError

from shared.auth.settings import DEFAULT_SESSION_TTL_SECONDS, AuthSettings


class TestAuthSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AUTH_DATABASE_PATH", raising=False)
        monkeypatch.delenv("AUTH_PASSWORD_HASHER", raising=False)
        monkeypatch.delenv("AUTH_SESSION_TTL_SECONDS", raising=False)
        settings = AuthSettings()
        assert settings.database_path == "backend/storage.db"
        assert settings.password_hasher == "bcrypt"
        assert settings.session_ttl_seconds == DEFAULT_SESSION_TTL_SECONDS

    def test_database_path_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_DATABASE_PATH", "custom/path/storage.db")
        assert AuthSettings().database_path == "custom/path/storage.db"

    def test_session_ttl_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_SESSION_TTL_SECONDS", "60")
        assert AuthSettings().session_ttl_seconds == 60

    def test_non_positive_session_ttl_rejected(self, monkeypatch):
        monkeypatch.setenv("AUTH_SESSION_TTL_SECONDS", "0")
        with pytest.raises(ValidationError, match="session_ttl_seconds"):
            AuthSettings()

    def test_unknown_hasher_rejected(self, monkeypatch):
        monkeypatch.setenv("AUTH_PASSWORD_HASHER", "md5")
        with pytest.raises(ValidationError, match="password_hasher"):
            AuthSettings()
