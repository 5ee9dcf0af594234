"""Abstract interface for share persistence.

Every state transition that must be race-safe is a conditional write keyed on
the state the caller observed. The methods return False when the stored record
no longer matches, and the caller decides whether to re-read and retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import Share


class ShareRepository(ABC):
    @abstractmethod
    async def create_share(self, share: Share) -> None:
        """Insert a share. Raises ValueError on a duplicate share_id."""

    @abstractmethod
    async def get_share(self, share_id: str) -> Share | None: ...

    @abstractmethod
    async def delete_share(self, share_id: str) -> bool:
        """Remove the record. Return False if it was already gone."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[Share]:
        """Return the owner's shares, newest first."""

    @abstractmethod
    async def list_expired(self, now: datetime) -> list[Share]:
        """Return shares whose expires_at is strictly before now."""

    @abstractmethod
    async def record_view(
        self,
        share_id: str,
        *,
        expected_view_count: int,
        download_token_hash: str | None = None,
        download_token_expires_at: datetime | None = None,
        delete_after_download: bool = False,
    ) -> bool:
        """Increment view_count if it still equals expected_view_count and the
        share has view budget left (view_limit, or one view for one-shot shares).

        In the same write, replaces the download token when one is given and
        sets delete_after_download when requested (never clears it).
        """

    @abstractmethod
    async def delete_if_unviewed_since(self, share_id: str, *, expected_view_count: int) -> bool:
        """Delete the record only if view_count still equals expected_view_count."""

    @abstractmethod
    async def claim_download_token(self, share_id: str, *, token_hash: str, now: datetime) -> bool:
        """Clear the download token if it matches and has not expired.

        Exactly one of several concurrent callers presenting the same token
        gets True.
        """
