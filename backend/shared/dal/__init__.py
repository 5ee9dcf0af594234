"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.models import FilePayload, Share, ShareKind
from shared.dal.session_repository import SessionRepository
from shared.dal.share_repository import ShareRepository
from shared.dal.user_repository import UserRepository

__all__ = [
    "FilePayload",
    "SessionRepository",
    "Share",
    "ShareKind",
    "ShareRepository",
    "UserRepository",
]
