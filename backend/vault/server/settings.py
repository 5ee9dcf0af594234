"""Vault server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list
from vault.shares.lifecycle import DEFAULT_DOWNLOAD_TOKEN_TTL_SECONDS
from vault.shares.reaper import DEFAULT_REAPER_INTERVAL_SECONDS
from vault.shares.registry import DEFAULT_EXPIRY_SECONDS, DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_TEXT_LENGTH, ShareLimits

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class VaultServerSettings(BaseSettings):
    model_config = {"env_prefix": "VAULT_"}

    log_dir: str = "backend/logs/vault"
    cors_origins: list[str] = []
    upload_dir: str = "backend/uploads"
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    max_text_length: int = Field(default=DEFAULT_MAX_TEXT_LENGTH, gt=0)
    # Empty list allows every content type
    allowed_mime_types: list[str] = []
    default_expiry_seconds: int = Field(default=DEFAULT_EXPIRY_SECONDS, gt=0)
    download_token_ttl_seconds: int = Field(default=DEFAULT_DOWNLOAD_TOKEN_TTL_SECONDS, gt=0)
    reaper_interval_seconds: float = Field(default=DEFAULT_REAPER_INTERVAL_SECONDS, gt=0)

    @field_validator("cors_origins", "allowed_mime_types", mode="before")
    @classmethod
    def validate_string_lists(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    def share_limits(self) -> ShareLimits:
        return ShareLimits(
            default_expiry_seconds=self.default_expiry_seconds,
            max_text_length=self.max_text_length,
            max_file_size=self.max_file_size,
            allowed_mime_types=tuple(self.allowed_mime_types),
        )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
