"""Abstract interface for identity persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.auth.models import User


class UserRepository(ABC):
    """Abstract interface for identity persistence.

    Implementations can use SQLite, PostgreSQL, etc.
    """

    @abstractmethod
    async def create_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User | None: ...
