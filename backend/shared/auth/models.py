"""Identity and session models for authentication."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, field_validator


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User(BaseModel, frozen=True):
    """Identity stored in the user repository. Never mutated after registration."""

    user_id: str
    email: str
    display_name: str | None = None
    password_hash: str  # bcrypt hash, salt embedded
    created_at: datetime

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("password_hash")
    @classmethod
    def _require_password_hash(cls, value: str) -> str:
        if not value:
            raise ValueError("Accounts must have a password hash")
        return value


@dataclass(frozen=True)
class AuthSession:
    """Server-side session record. Only the SHA-256 of the bearer token is kept."""

    session_id: str
    user_id: str
    token_hash: str
    created_at: datetime
    expires_at: datetime

    def is_active(self, now: datetime) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class IssuedSession:
    """A freshly created session plus its plaintext bearer token (returned once)."""

    token: str
    session: AuthSession

    @property
    def expires_at(self) -> datetime:
        return self.session.expires_at
