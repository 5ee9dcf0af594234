"""Lifecycle coordinator: consumption side effects for shares.

Every mutation is a conditional write against the state that was just read
and gated. Losing a race means the record changed underneath us; the call is
re-read and re-gated once before it reports a conflict.

File shares use a two-step protocol. consume() records the view and mints a
short-lived download token; redeem_download() claims that token and hands
back a DownloadHandle whose completion step retires the share when it was
one-shot.
"""

from __future__ import annotations

import hmac
import secrets
import sqlite3
from datetime import timedelta
from typing import TYPE_CHECKING

import anyio
import structlog

from shared.auth.session_store import hash_token
from shared.dal.models import ShareKind
from vault.shares.gate import check_gates
from vault.shares.types import AccessReason, ConsumeResult, DeleteResult, RedeemResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from datetime import datetime

    from shared.auth.password import PasswordHasher
    from shared.clock import Clock
    from shared.dal.models import Share
    from shared.dal.share_repository import ShareRepository
    from shared.storage import BlobRepository

logger = structlog.get_logger()

DEFAULT_DOWNLOAD_TOKEN_TTL_SECONDS = 300
DOWNLOAD_TOKEN_BYTES = 18
_CONSUME_ATTEMPTS = 2


def _digest_matches(presented: str | None, stored_hash: str | None) -> bool:
    if not presented or stored_hash is None:
        return False
    return hmac.compare_digest(hash_token(presented), stored_hash)


class DownloadHandle:
    """Byte stream for one claimed download plus its run-once completion step.

    Iterate stream() to send the bytes. The completion step runs when the
    stream ends, fails or is abandoned, whichever comes first, and is shielded
    from cancellation. Call finish() directly when the stream might never be
    started.
    """

    def __init__(
        self,
        share: Share,
        chunks: AsyncIterator[bytes],
        on_complete: Callable[[bool], Awaitable[None]],
    ) -> None:
        if share.file is None:
            raise ValueError("Download handles are only created for file shares")
        self.share = share
        self.file = share.file
        self._chunks = chunks
        self._on_complete = on_complete
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    async def stream(self) -> AsyncIterator[bytes]:
        completed = False
        try:
            async for chunk in self._chunks:
                yield chunk
            completed = True
        finally:
            await self.finish(completed=completed)

    async def finish(self, *, completed: bool = False) -> None:
        if self._finished:
            return
        self._finished = True
        with anyio.CancelScope(shield=True):
            await self._on_complete(completed)


class LifecycleCoordinator:
    def __init__(
        self,
        repo: ShareRepository,
        blobs: BlobRepository,
        hasher: PasswordHasher,
        clock: Clock,
        *,
        download_token_ttl_seconds: int = DEFAULT_DOWNLOAD_TOKEN_TTL_SECONDS,
    ) -> None:
        self._repo = repo
        self._blobs = blobs
        self._hasher = hasher
        self._clock = clock
        self._token_ttl = timedelta(seconds=download_token_ttl_seconds)

    async def consume(self, share_id: str, caller_id: str | None, supplied_secret: str | None) -> ConsumeResult:
        """Gate an access attempt and record exactly one view when admitted."""
        for attempt in range(_CONSUME_ATTEMPTS):
            share = await self._repo.get_share(share_id)
            if share is None:
                return ConsumeResult(reason=AccessReason.NOT_FOUND)
            now = self._clock.now()
            reason = check_gates(share, now, caller_id)
            if reason is None and share.requires_secret and not await self._secret_matches(share, supplied_secret):
                reason = AccessReason.BAD_SECRET
            if reason is not None:
                logger.info("share access denied", share_id=share_id, reason=reason)
                return ConsumeResult(reason=reason)

            result = await self._record_view(share, now)
            if result is not None:
                return result
            logger.info("share changed during consume", share_id=share_id, attempt=attempt + 1)

        logger.warning("consume conflict persisted after retry", share_id=share_id)
        return ConsumeResult(reason=AccessReason.CONFLICT)

    async def redeem_download(self, share_id: str, token: str | None) -> RedeemResult:
        """Claim a download token and return a handle for streaming the bytes."""
        share = await self._repo.get_share(share_id)
        if share is None or share.kind != ShareKind.FILE or share.file is None:
            return RedeemResult(reason=AccessReason.NOT_FOUND)
        now = self._clock.now()
        if now > share.expires_at:
            return RedeemResult(reason=AccessReason.EXPIRED)
        if not _digest_matches(token, share.download_token_hash):
            return RedeemResult(reason=AccessReason.BAD_TOKEN)
        if share.download_token_expires_at is None or now > share.download_token_expires_at:
            return RedeemResult(reason=AccessReason.TOKEN_EXPIRED)
        if not await self._blobs.exists(share.file.storage_key):
            logger.warning("blob missing for share", share_id=share_id, storage_key=share.file.storage_key)
            return RedeemResult(reason=AccessReason.UNAVAILABLE)

        # Claiming clears the token, so a concurrent redemption of the same
        # token observes it gone and reports bad-token.
        claimed = await self._repo.claim_download_token(share_id, token_hash=share.download_token_hash, now=now)
        if not claimed:
            return RedeemResult(reason=AccessReason.BAD_TOKEN)

        async def _complete(completed: bool) -> None:
            await self._finish_download(share, completed=completed)

        logger.info("download started", share_id=share_id, byte_size=share.file.byte_size)
        handle = DownloadHandle(share, self._blobs.open_read(share.file.storage_key), _complete)
        return RedeemResult(handle=handle)

    async def delete_by_capability(
        self,
        share_id: str,
        caller_id: str | None,
        supplied_delete_token: str | None,
    ) -> DeleteResult:
        """Owned shares need their owner; unowned shares need the delete token."""
        share = await self._repo.get_share(share_id)
        if share is None:
            return DeleteResult(reason=AccessReason.NOT_FOUND)
        if share.owner_id is not None:
            if caller_id != share.owner_id:
                return DeleteResult(reason=AccessReason.NOT_OWNER)
        elif not _digest_matches(supplied_delete_token, share.delete_token_hash):
            return DeleteResult(reason=AccessReason.BAD_DELETE_TOKEN)

        if not await self.remove(share):
            return DeleteResult(reason=AccessReason.NOT_FOUND)
        logger.info("share deleted", share_id=share_id, by_owner=share.owner_id is not None)
        return DeleteResult()

    async def remove(self, share: Share) -> bool:
        """Delete the record, then the blob (best effort). Return False if the record was already gone."""
        removed = await self._repo.delete_share(share.share_id)
        if share.file is not None:
            await self._delete_blob(share)
        return removed

    # -- private helpers --

    async def _secret_matches(self, share: Share, supplied: str | None) -> bool:
        if supplied is None or share.secret_hash is None:
            return False
        return await self._hasher.verify(supplied, share.secret_hash)

    async def _record_view(self, share: Share, now: datetime) -> ConsumeResult | None:
        """Apply the view as one conditional write. Return None when the race was lost."""
        expected = share.view_count
        viewed = share.model_copy(update={"view_count": expected + 1})

        if share.kind == ShareKind.TEXT:
            if share.one_shot:
                won = await self._repo.delete_if_unviewed_since(share.share_id, expected_view_count=expected)
            else:
                won = await self._repo.record_view(share.share_id, expected_view_count=expected)
            if not won:
                return None
            logger.info("share consumed", share_id=share.share_id, view_count=viewed.view_count, deleted=share.one_shot)
            return ConsumeResult(share=viewed)

        token = secrets.token_urlsafe(DOWNLOAD_TOKEN_BYTES)
        token_expires_at = now + self._token_ttl
        won = await self._repo.record_view(
            share.share_id,
            expected_view_count=expected,
            download_token_hash=hash_token(token),
            download_token_expires_at=token_expires_at,
            delete_after_download=share.one_shot,
        )
        if not won:
            return None
        viewed = viewed.model_copy(
            update={
                "download_token_hash": hash_token(token),
                "download_token_expires_at": token_expires_at,
                "delete_after_download": share.delete_after_download or share.one_shot,
            },
        )
        logger.info("share consumed", share_id=share.share_id, view_count=viewed.view_count, download_token_issued=True)
        return ConsumeResult(share=viewed, download_token=token)

    async def _finish_download(self, share: Share, *, completed: bool) -> None:
        logger.info("download finished", share_id=share.share_id, completed=completed)
        if not share.delete_after_download:
            return
        try:
            await self.remove(share)
        except sqlite3.Error:
            logger.exception("could not retire downloaded share", share_id=share.share_id)
            return
        logger.info("one-shot share retired after download", share_id=share.share_id)

    async def _delete_blob(self, share: Share) -> None:
        if share.file is None:  # pragma: no cover
            return
        try:
            await self._blobs.delete(share.file.storage_key)
        except OSError:
            logger.warning(
                "blob deletion failed",
                share_id=share.share_id,
                storage_key=share.file.storage_key,
                exc_info=True,
            )
