"""Access gate: pure admit/deny decisions for a share access attempt.

Checks run in a fixed order and the first failing one wins:

1. owner-only share and the caller is not the owner -> owner-required
2. now is past expires_at -> expired
3. view budget used up -> exhausted
4. secret required and the supplied one does not match -> bad-secret

Secrets are stored hashed and verifying one is slow, so the caller verifies
the secret only after steps 1-3 admit and passes the outcome in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from vault.shares.types import AccessReason, GateDecision, PrecheckResult

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import Share


def is_owner(share: Share, caller_id: str | None) -> bool:
    return caller_id is not None and share.owner_id is not None and caller_id == share.owner_id


def check_gates(share: Share, now: datetime, caller_id: str | None) -> AccessReason | None:
    """Run every check except the secret comparison. Return the first failing reason."""
    if share.owner_only and not is_owner(share, caller_id):
        return AccessReason.OWNER_REQUIRED
    if now > share.expires_at:
        return AccessReason.EXPIRED
    limit = share.effective_view_limit
    if limit is not None and share.view_count >= limit:
        return AccessReason.EXHAUSTED
    return None


def evaluate(share: Share, now: datetime, caller_id: str | None, *, secret_ok: bool) -> GateDecision:
    reason = check_gates(share, now, caller_id)
    if reason is None and share.requires_secret and not secret_ok:
        reason = AccessReason.BAD_SECRET
    if reason is not None:
        return GateDecision(admit=False, reason=reason)
    return GateDecision(admit=True)


def precheck(share: Share, now: datetime, caller_id: str | None) -> PrecheckResult:
    """Evaluate steps 1-3 and report whether a secret will be required. Never mutates."""
    reason = check_gates(share, now, caller_id)
    if reason == AccessReason.OWNER_REQUIRED:
        return PrecheckResult(reason=reason, requires_secret=False, requires_auth=True)
    return PrecheckResult(reason=reason, requires_secret=share.requires_secret, requires_auth=False)
