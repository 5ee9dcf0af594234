"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import BaseUser

if TYPE_CHECKING:
    from shared.auth.models import User


class AuthenticatedUser(BaseUser):
    """Authenticated user for Starlette's request.user.

    Created by the auth backend from a valid bearer session. Carries the
    session id so logout can revoke exactly the presenting session.
    """

    def __init__(self, user: User, session_id: str) -> None:
        self._user = user
        self._session_id = session_id

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:  # pragma: no cover
        return self._user.display_name or self._user.email

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._user.user_id

    @property
    def user_id(self) -> str:
        return self._user.user_id

    @property
    def user(self) -> User:
        return self._user

    @property
    def session_id(self) -> str:
        return self._session_id


def caller_id(user: BaseUser) -> str | None:
    """Return the authenticated user's id, or None for anonymous requests."""
    if isinstance(user, AuthenticatedUser):
        return user.user_id
    return None
