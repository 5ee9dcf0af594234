"""Auth and persistence settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 3600  # 7 days


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # SQLite database file path (users, sessions, shares)
    database_path: str = "backend/storage.db"

    # "simple" is only for tests
    password_hasher: Literal["bcrypt", "simple"] = "bcrypt"

    session_ttl_seconds: int = Field(default=DEFAULT_SESSION_TTL_SECONDS, gt=0)
