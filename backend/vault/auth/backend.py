"""Starlette AuthenticationBackend that validates bearer session tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend

from vault.auth.models import AuthenticatedUser

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from shared.auth.service import AuthService

BEARER_PREFIX = "Bearer"


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    prefix, _, token = authorization.partition(" ")
    token = token.strip()
    if prefix != BEARER_PREFIX or not token:
        return None
    return token


class BearerTokenBackend(AuthenticationBackend):
    """Authenticate requests via the Authorization header.

    A missing, malformed, unknown or expired token leaves the request
    anonymous; routes decide through their auth policy whether that is fine.
    """

    def __init__(self, auth_service: AuthService) -> None:
        self._auth_service = auth_service

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedUser] | None:
        token = bearer_token(conn.headers.get("authorization"))
        if token is None:
            return None
        resolved = await self._auth_service.resolve(token)
        if resolved is None:
            return None
        user, session = resolved
        return AuthCredentials(["authenticated"]), AuthenticatedUser(user, session.session_id)
