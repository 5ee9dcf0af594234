"""Bearer session store backed by the session repository.

The plaintext token leaves this module exactly once, inside the IssuedSession
returned by issue(). Only its SHA-256 is persisted or compared.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.auth.models import AuthSession, IssuedSession
from shared.auth.settings import DEFAULT_SESSION_TTL_SECONDS

if TYPE_CHECKING:
    from shared.clock import Clock
    from shared.dal.session_repository import SessionRepository

TOKEN_BYTES = 32

logger = structlog.get_logger()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthSessionStore:
    """Issue, resolve, revoke and sweep bearer sessions with an absolute TTL."""

    def __init__(
        self,
        repo: SessionRepository,
        clock: Clock,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)

    async def issue(self, user_id: str) -> IssuedSession:
        """Create a session for an authenticated user and return its token once."""
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self._clock.now()
        session = AuthSession(
            session_id=str(uuid4()),
            user_id=user_id,
            token_hash=hash_token(token),
            created_at=now,
            expires_at=now + self._ttl,
        )
        await self._repo.create_session(session)
        logger.info("session issued", user_id=user_id, session_id=session.session_id)
        return IssuedSession(token=token, session=session)

    async def resolve(self, token: str | None) -> AuthSession | None:
        """Return the active session for a presented bearer token, or None."""
        if not token:
            return None
        session = await self._repo.get_by_token_hash(hash_token(token))
        if session is None:
            return None
        if not session.is_active(self._clock.now()):
            return None
        return session

    async def revoke(self, session_id: str) -> None:
        await self._repo.delete_session(session_id)
        logger.info("session revoked", session_id=session_id)

    async def sweep(self) -> int:
        """Delete sessions whose expiry has passed. Return the number removed."""
        removed = await self._repo.delete_expired(self._clock.now())
        if removed:
            logger.info("cleaned up expired sessions", count=removed)
        return removed
