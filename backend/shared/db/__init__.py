"""SQLite database layer: connection management and repository implementations."""

from shared.db.connection import Database
from shared.db.session_repository import SqliteSessionRepository
from shared.db.share_repository import SqliteShareRepository
from shared.db.user_repository import SqliteUserRepository

__all__ = [
    "Database",
    "SqliteSessionRepository",
    "SqliteShareRepository",
    "SqliteUserRepository",
]
