"""Share registry: validated creation, lookup, listing and record deletion."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

import structlog

from shared.auth.password import MAX_SECRET_BYTES, secret_too_long
from shared.auth.session_store import hash_token
from shared.dal.models import FilePayload, Share, ShareKind
from vault.shares.types import (
    INVALID_EXPIRY_MESSAGE,
    CreatedShare,
    LoginRequiredError,
    ShareValidationError,
)

if TYPE_CHECKING:
    from datetime import datetime

    from shared.auth.password import PasswordHasher
    from shared.clock import Clock
    from shared.dal.share_repository import ShareRepository
    from shared.storage import BlobRepository
    from vault.shares.types import FileUpload, ShareOptions

logger = structlog.get_logger()

SHARE_ID_LENGTH = 10
DELETE_TOKEN_BYTES = 18  # 24 URL-safe characters
_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
_ID_ATTEMPTS = 3

DEFAULT_EXPIRY_SECONDS = 600
DEFAULT_MAX_TEXT_LENGTH = 1024 * 1024
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024


def new_share_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(SHARE_ID_LENGTH))


def _display_name(filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name.strip()
    return name or "download"


@dataclass(frozen=True)
class ShareLimits:
    default_expiry_seconds: int = DEFAULT_EXPIRY_SECONDS
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_mime_types: tuple[str, ...] = ()


class ShareRegistry:
    """Authoritative store for share records.

    Creation validates the request, stores the blob for file shares, and
    persists the record with hashed secrets. The plaintext delete token is
    only returned from create_text()/create_file().
    """

    def __init__(
        self,
        repo: ShareRepository,
        blobs: BlobRepository,
        hasher: PasswordHasher,
        clock: Clock,
        limits: ShareLimits | None = None,
    ) -> None:
        self._repo = repo
        self._blobs = blobs
        self._hasher = hasher
        self._clock = clock
        self._limits = limits or ShareLimits()

    async def create_text(self, text: str | None, options: ShareOptions, owner_id: str | None = None) -> CreatedShare:
        if not text or not text.strip():
            raise ShareValidationError("Text content required")
        if len(text) > self._limits.max_text_length:
            raise ShareValidationError(f"Text exceeds the maximum length of {self._limits.max_text_length} characters")
        return await self._create(ShareKind.TEXT, options, owner_id, text=text)

    async def create_file(
        self,
        upload: FileUpload | None,
        options: ShareOptions,
        owner_id: str | None = None,
    ) -> CreatedShare:
        if upload is None or not upload.data:
            raise ShareValidationError("No file uploaded")
        allowed = self._limits.allowed_mime_types
        if allowed and upload.content_type not in allowed:
            raise ShareValidationError("File type not allowed")
        if len(upload.data) > self._limits.max_file_size:
            max_mb = self._limits.max_file_size // (1024 * 1024)
            raise ShareValidationError(f"File too large. Max size is {max_mb}MB.")
        return await self._create(ShareKind.FILE, options, owner_id, upload=upload)

    async def find(self, share_id: str) -> Share | None:
        return await self._repo.get_share(share_id)

    async def delete(self, share_id: str) -> bool:
        """Remove the record only. Blob cleanup belongs to the caller."""
        return await self._repo.delete_share(share_id)

    async def list_by_owner(self, owner_id: str) -> list[Share]:
        return await self._repo.list_by_owner(owner_id)

    # -- private helpers --

    def _resolve_expiry(self, requested: datetime | None, now: datetime) -> datetime:
        if requested is None:
            return now + timedelta(seconds=self._limits.default_expiry_seconds)
        if requested <= now:
            raise ShareValidationError(INVALID_EXPIRY_MESSAGE)
        return requested

    async def _create(
        self,
        kind: ShareKind,
        options: ShareOptions,
        owner_id: str | None,
        *,
        text: str | None = None,
        upload: FileUpload | None = None,
    ) -> CreatedShare:
        if options.owner_only and owner_id is None:
            raise LoginRequiredError("Login required for owner-only share")
        now = self._clock.now()
        expires_at = self._resolve_expiry(options.expires_at, now)
        if options.secret is not None and secret_too_long(options.secret):
            raise ShareValidationError(f"Password must not exceed {MAX_SECRET_BYTES} bytes")

        secret_hash = await self._hasher.hash(options.secret) if options.secret is not None else None
        delete_token = secrets.token_urlsafe(DELETE_TOKEN_BYTES)

        payload = None
        if upload is not None:
            storage_key = await self._blobs.put(upload.data, upload.filename)
            payload = FilePayload(
                storage_key=storage_key,
                display_name=_display_name(upload.filename),
                byte_size=len(upload.data),
                content_type=upload.content_type,
            )

        try:
            share = await self._insert(
                kind=kind,
                text=text,
                file=payload,
                secret_hash=secret_hash,
                owner_id=owner_id,
                owner_only=options.owner_only,
                one_shot=options.one_shot,
                view_limit=options.view_limit,
                expires_at=expires_at,
                delete_token_hash=hash_token(delete_token),
                created_at=now,
            )
        except BaseException:
            if payload is not None:
                await self._discard_blob(payload.storage_key)
            raise

        logger.info(
            "share created",
            share_id=share.share_id,
            kind=kind,
            owner_only=share.owner_only,
            one_shot=share.one_shot,
            view_limit=share.view_limit,
        )
        return CreatedShare(share=share, delete_token=delete_token)

    async def _insert(self, **fields: object) -> Share:
        """Persist under a fresh random id, retrying on the rare collision."""
        for _ in range(_ID_ATTEMPTS):
            share = Share(share_id=new_share_id(), **fields)  # type: ignore[arg-type]
            try:
                await self._repo.create_share(share)
            except ValueError:
                logger.warning("share id collision", share_id=share.share_id)
                continue
            return share
        raise RuntimeError("Could not allocate a unique share id")

    async def _discard_blob(self, storage_key: str) -> None:
        try:
            await self._blobs.delete(storage_key)
        except OSError:
            logger.warning("could not remove orphaned blob", storage_key=storage_key, exc_info=True)
