"""Request options, outcome types and errors for the share engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.validators import parse_flag, parse_optional_positive_int

if TYPE_CHECKING:
    from shared.dal.models import Share
    from vault.shares.lifecycle import DownloadHandle

INVALID_EXPIRY_MESSAGE = "Invalid expiry date. Must be a future date/time."


class AccessReason(StrEnum):
    NOT_FOUND = "not-found"
    OWNER_REQUIRED = "owner-required"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    BAD_SECRET = "bad-secret"
    BAD_TOKEN = "bad-token"
    TOKEN_EXPIRED = "token-expired"
    UNAVAILABLE = "unavailable"
    NOT_OWNER = "not-owner"
    BAD_DELETE_TOKEN = "bad-delete-token"
    CONFLICT = "conflict"


class ShareValidationError(ValueError):
    """Malformed create input. The message is safe to show to the caller."""


class LoginRequiredError(ShareValidationError):
    """An option that needs an authenticated creator was requested anonymously."""


class ShareOptions(BaseModel):
    """Gating options supplied at share creation.

    Accepts JSON bodies and multipart forms alike, so every field tolerates
    string input. Field aliases are the public request names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    secret: str | None = Field(default=None, alias="password")
    one_shot: bool = Field(default=False, alias="oneTime")
    view_limit: int | None = Field(default=None, alias="maxViews")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")
    owner_only: bool = Field(default=False, alias="ownerOnly")

    @field_validator("secret", mode="before")
    @classmethod
    def _blank_secret_is_none(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        if not isinstance(v, str):
            raise ValueError("Password must be a string")  # noqa: TRY004
        return v

    @field_validator("one_shot", "owner_only", mode="before")
    @classmethod
    def _parse_flag(cls, v: Any) -> bool:
        return parse_flag(v)

    @field_validator("view_limit", mode="before")
    @classmethod
    def _parse_view_limit(cls, v: Any) -> int | None:
        try:
            return parse_optional_positive_int(v)
        except ValueError:
            raise ValueError("maxViews must be an integer greater than 0") from None

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expiry(cls, v: Any) -> datetime | None:
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            parsed = v
        elif isinstance(v, str):
            try:
                parsed = datetime.fromisoformat(v.strip())
            except ValueError:
                raise ValueError(INVALID_EXPIRY_MESSAGE) from None
        else:
            raise ValueError(INVALID_EXPIRY_MESSAGE)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        try:
            return parsed.astimezone(UTC)
        except OverflowError:
            raise ValueError(INVALID_EXPIRY_MESSAGE) from None


@dataclass(frozen=True)
class FileUpload:
    data: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class CreatedShare:
    """A new share plus its delete capability in plaintext (handed out once)."""

    share: Share
    delete_token: str


@dataclass(frozen=True)
class GateDecision:
    admit: bool
    reason: AccessReason | None = None


@dataclass(frozen=True)
class PrecheckResult:
    """Side-effect-free view of whether an access attempt could succeed.

    requires_secret is only meaningful when the caller passed the owner check;
    it is always False when requires_auth is True.
    """

    reason: AccessReason | None
    requires_secret: bool
    requires_auth: bool

    @property
    def accessible(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class ConsumeResult:
    reason: AccessReason | None = None
    share: Share | None = None  # snapshot after the view was recorded
    download_token: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class DeleteResult:
    reason: AccessReason | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class RedeemResult:
    reason: AccessReason | None = None
    handle: DownloadHandle | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None
