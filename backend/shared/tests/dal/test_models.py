"""Tests for DAL persistence models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from shared.dal.models import FilePayload, Share, ShareKind

CREATED = datetime(2026, 1, 1, tzinfo=UTC)
FILE = FilePayload(storage_key="k.bin", display_name="a.bin", byte_size=3)


def _share(**overrides) -> Share:
    fields = {
        "share_id": "abc",
        "kind": ShareKind.TEXT,
        "text": "hi",
        "expires_at": CREATED + timedelta(minutes=10),
        "delete_token_hash": "h",
        "created_at": CREATED,
    }
    fields.update(overrides)
    return Share(**fields)


class TestShareShape:
    def test_text_share_requires_text(self):
        with pytest.raises(ValidationError, match="inline text"):
            _share(text=None)

    def test_text_share_rejects_file_payload(self):
        with pytest.raises(ValidationError, match="inline text"):
            _share(file=FILE)

    def test_file_share_requires_payload(self):
        with pytest.raises(ValidationError, match="file payload"):
            _share(kind=ShareKind.FILE, text=None)

    def test_owner_only_requires_owner(self):
        with pytest.raises(ValidationError, match="must have an owner"):
            _share(owner_only=True)

    def test_view_limit_must_be_positive(self):
        with pytest.raises(ValidationError, match="view_limit"):
            _share(view_limit=0)

    def test_default_content_type(self):
        assert FILE.content_type == "application/octet-stream"

    def test_is_frozen(self):
        share = _share()
        with pytest.raises(ValidationError):
            share.view_count = 3


class TestEffectiveViewLimit:
    def test_unlimited_by_default(self):
        assert _share().effective_view_limit is None

    def test_uses_view_limit(self):
        assert _share(view_limit=4).effective_view_limit == 4

    def test_one_shot_allows_single_view(self):
        assert _share(one_shot=True, view_limit=4).effective_view_limit == 1

    def test_requires_secret(self):
        assert _share().requires_secret is False
        assert _share(secret_hash="x").requires_secret is True


def test_serialization_roundtrip():
    share = _share(kind=ShareKind.FILE, text=None, file=FILE, one_shot=True)
    restored = Share.model_validate_json(share.model_dump_json())
    assert restored == share
