"""Tests for the access gate decision order and pre-check."""

from datetime import UTC, datetime, timedelta

import pytest

from shared.dal.models import FilePayload, Share, ShareKind
from vault.shares.gate import check_gates, evaluate, is_owner, precheck
from vault.shares.types import AccessReason

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _share(**overrides) -> Share:
    fields = {
        "share_id": "s1",
        "kind": ShareKind.TEXT,
        "text": "hello",
        "expires_at": NOW + timedelta(minutes=10),
        "delete_token_hash": "d",
        "created_at": NOW,
    }
    fields.update(overrides)
    return Share(**fields)


class TestIsOwner:
    def test_matching_owner(self):
        assert is_owner(_share(owner_id="u1"), "u1")

    def test_anonymous_caller_is_never_owner(self):
        assert not is_owner(_share(owner_id="u1"), None)

    def test_unowned_share_has_no_owner(self):
        assert not is_owner(_share(), "u1")


class TestCheckOrder:
    def test_plain_share_admits(self):
        assert check_gates(_share(), NOW, None) is None

    def test_owner_required_beats_expired_and_exhausted(self):
        share = _share(
            owner_id="u1",
            owner_only=True,
            expires_at=NOW - timedelta(seconds=1),
            view_limit=1,
            view_count=1,
        )
        assert check_gates(share, NOW, "someone-else") == AccessReason.OWNER_REQUIRED
        assert check_gates(share, NOW, None) == AccessReason.OWNER_REQUIRED

    def test_expired_beats_exhausted(self):
        share = _share(expires_at=NOW - timedelta(seconds=1), view_limit=1, view_count=1)
        assert check_gates(share, NOW, None) == AccessReason.EXPIRED

    def test_expiry_instant_itself_is_still_open(self):
        share = _share(expires_at=NOW)
        assert check_gates(share, NOW, None) is None
        assert check_gates(share, NOW + timedelta(microseconds=1), None) == AccessReason.EXPIRED

    def test_view_limit_reached(self):
        assert check_gates(_share(view_limit=2, view_count=1), NOW, None) is None
        assert check_gates(_share(view_limit=2, view_count=2), NOW, None) == AccessReason.EXHAUSTED

    def test_one_shot_allows_a_single_view(self):
        assert check_gates(_share(one_shot=True), NOW, None) is None
        assert check_gates(_share(one_shot=True, view_count=1), NOW, None) == AccessReason.EXHAUSTED

    def test_owner_passes_owner_only_gate(self):
        assert check_gates(_share(owner_id="u1", owner_only=True), NOW, "u1") is None


class TestEvaluate:
    def test_bad_secret_is_last(self):
        decision = evaluate(_share(secret_hash="h"), NOW, None, secret_ok=False)
        assert not decision.admit
        assert decision.reason == AccessReason.BAD_SECRET

    def test_earlier_reason_wins_over_bad_secret(self):
        share = _share(secret_hash="h", expires_at=NOW - timedelta(minutes=1))
        decision = evaluate(share, NOW, None, secret_ok=False)
        assert decision.reason == AccessReason.EXPIRED

    def test_secret_ok_admits(self):
        decision = evaluate(_share(secret_hash="h"), NOW, None, secret_ok=True)
        assert decision.admit
        assert decision.reason is None

    def test_secret_outcome_ignored_without_secret(self):
        assert evaluate(_share(), NOW, None, secret_ok=False).admit


class TestPrecheck:
    def test_reports_secret_requirement(self):
        result = precheck(_share(secret_hash="h"), NOW, None)
        assert result.accessible
        assert result.requires_secret
        assert not result.requires_auth

    def test_owner_required_hides_secret_requirement(self):
        share = _share(owner_id="u1", owner_only=True, secret_hash="h")
        result = precheck(share, NOW, None)
        assert not result.accessible
        assert result.reason == AccessReason.OWNER_REQUIRED
        assert result.requires_auth
        assert not result.requires_secret

    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"expires_at": NOW - timedelta(seconds=5)}, AccessReason.EXPIRED),
            ({"view_limit": 1, "view_count": 1}, AccessReason.EXHAUSTED),
        ],
    )
    def test_denials(self, overrides, reason):
        assert precheck(_share(**overrides), NOW, None).reason == reason

    def test_file_share_precheck(self):
        share = Share(
            share_id="f1",
            kind=ShareKind.FILE,
            file=FilePayload(storage_key="k", display_name="a.txt", byte_size=1),
            expires_at=NOW + timedelta(minutes=1),
            delete_token_hash="d",
            created_at=NOW,
        )
        assert precheck(share, NOW, None).accessible
