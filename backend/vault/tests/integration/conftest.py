"""Shared fixtures for vault HTTP integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.testclient import TestClient

from shared.auth.settings import AuthSettings
from vault.server.app import create_app
from vault.server.settings import VaultServerSettings

if TYPE_CHECKING:
    from pathlib import Path

    from shared.clock import ManualClock

PASSWORD = "correct-horse-battery"


@pytest.fixture
def server_settings(tmp_path: Path) -> VaultServerSettings:
    return VaultServerSettings(
        upload_dir=str(tmp_path / "uploads"),
        max_file_size=1024 * 1024,
        download_token_ttl_seconds=60,
    )


@pytest.fixture
def client(tmp_path: Path, server_settings: VaultServerSettings, clock: ManualClock):
    app = create_app(
        settings=server_settings,
        auth_settings=AuthSettings(database_path=str(tmp_path / "vault.db"), password_hasher="simple"),
        clock=clock,
    )
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, email: str) -> dict[str, str]:
    """Register an account and return its Authorization header."""
    response = client.post("/api/auth/register", json={"email": email, "password": PASSWORD})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def alice(client: TestClient) -> dict[str, str]:
    return register(client, "alice@example.com")


@pytest.fixture
def bob(client: TestClient) -> dict[str, str]:
    return register(client, "bob@example.com")
