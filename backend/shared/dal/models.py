"""Persistence models for the data access layer."""

from datetime import datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field, model_validator


class ShareKind(StrEnum):
    TEXT = "text"
    FILE = "file"


class FilePayload(BaseModel, frozen=True):
    """Reference to the blob backing a file share."""

    storage_key: str  # opaque key in the blob repository, never reused
    display_name: str  # original filename offered on download
    byte_size: int = Field(ge=0)
    content_type: str = "application/octet-stream"


class Share(BaseModel, frozen=True):
    """Authoritative share record.

    Instances are snapshots: every operation re-reads the record and writes
    changes back through the repository's conditional updates.
    """

    share_id: str
    kind: ShareKind
    text: str | None = None
    file: FilePayload | None = None
    secret_hash: str | None = None  # None means no password gate
    owner_id: str | None = None
    owner_only: bool = False
    one_shot: bool = False
    view_limit: int | None = Field(default=None, ge=1)
    view_count: int = Field(default=0, ge=0)
    expires_at: datetime
    delete_token_hash: str
    download_token_hash: str | None = None
    download_token_expires_at: datetime | None = None
    delete_after_download: bool = False
    created_at: datetime

    @model_validator(mode="after")
    def _validate_shape(self) -> Self:
        if self.kind == ShareKind.TEXT and (self.text is None or self.file is not None):
            raise ValueError("Text shares carry inline text and no file payload")
        if self.kind == ShareKind.FILE and (self.file is None or self.text is not None):
            raise ValueError("File shares carry a file payload and no inline text")
        if self.owner_only and self.owner_id is None:
            raise ValueError("Owner-only shares must have an owner")
        return self

    @property
    def requires_secret(self) -> bool:
        return self.secret_hash is not None

    @property
    def effective_view_limit(self) -> int | None:
        """View ceiling used by the access gate. One-shot shares allow one view."""
        if self.one_shot:
            return 1
        return self.view_limit
