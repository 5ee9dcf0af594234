"""Auth service coordinating registration, login, and session management."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.auth.models import User, normalize_email

if TYPE_CHECKING:
    from shared.auth.models import AuthSession, IssuedSession
    from shared.auth.password import PasswordHasher
    from shared.auth.session_store import AuthSessionStore
    from shared.clock import Clock
    from shared.dal.user_repository import UserRepository

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
EMAIL_MAX_LENGTH = 254
DISPLAY_NAME_MAX_LENGTH = 64

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt rejects longer inputs

logger = structlog.get_logger()


class AuthError(Exception):
    """Authentication or authorization failure."""


class EmailTakenError(AuthError):
    """Registration attempted with an email that already has an account."""


class AuthService:
    """Coordinate user registration, login, and bearer session resolution."""

    def __init__(
        self,
        user_repo: UserRepository,
        session_store: AuthSessionStore,
        *,
        password_hasher: PasswordHasher,
        clock: Clock,
    ) -> None:
        self._user_repo = user_repo
        self._session_store = session_store
        self._hasher = password_hasher
        self._clock = clock

    async def register(self, email: str, password: str, display_name: str | None = None) -> User:
        """Register a new account. Email is trimmed and lower-cased."""
        email = normalize_email(email)
        _validate_email(email)
        _validate_password(password)
        display_name = _clean_display_name(display_name)
        if await self._user_repo.get_by_email(email) is not None:
            raise EmailTakenError("Email already registered")

        user = User(
            user_id=str(uuid4()),
            email=email,
            display_name=display_name,
            password_hash=await self._hasher.hash(password),
            created_at=self._clock.now(),
        )
        try:
            await self._user_repo.create_user(user)
        except ValueError as e:
            raise EmailTakenError(str(e)) from e
        logger.info("user registered", user_id=user.user_id)
        return user

    async def login(self, email: str, password: str) -> tuple[User, IssuedSession]:
        """Validate credentials and issue a session."""
        user = await self._user_repo.get_by_email(normalize_email(email))
        if user is None:
            raise AuthError("Invalid credentials")
        if not await self._hasher.verify(password, user.password_hash):
            raise AuthError("Invalid credentials")
        issued = await self._session_store.issue(user.user_id)
        return user, issued

    async def start_session(self, user: User) -> IssuedSession:
        """Issue a session for a user that was just registered."""
        return await self._session_store.issue(user.user_id)

    async def resolve(self, token: str | None) -> tuple[User, AuthSession] | None:
        """Return the user and session behind a bearer token, or None on any miss."""
        session = await self._session_store.resolve(token)
        if session is None:
            return None
        user = await self._user_repo.get_by_id(session.user_id)
        if user is None:
            return None
        return user, session

    async def logout(self, session_id: str) -> None:
        await self._session_store.revoke(session_id)


def _validate_email(email: str) -> None:
    if not email:
        raise AuthError("Email is required")
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        raise AuthError("Email address is not valid")


def _validate_password(password: str) -> None:
    """Validate password: 8-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")


def _clean_display_name(display_name: str | None) -> str | None:
    if display_name is None:
        return None
    display_name = display_name.strip()
    if not display_name:
        return None
    if len(display_name) > DISPLAY_NAME_MAX_LENGTH:
        raise AuthError(f"Display name must not exceed {DISPLAY_NAME_MAX_LENGTH} characters")
    return display_name
