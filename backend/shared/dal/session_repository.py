"""Abstract interface for bearer session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.auth.models import AuthSession


class SessionRepository(ABC):
    """Sessions are looked up by the hash of their bearer token, never the token itself."""

    @abstractmethod
    async def create_session(self, session: AuthSession) -> None: ...

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> AuthSession | None: ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> None: ...

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int: ...
