"""Blob storage for uploaded share files.

Blobs are written under freshly generated keys that are never reused, so
there is no overwrite or versioning story. Files are written with owner-only
permissions (0o600) inside an owner-only directory (0o700) as a filesystem
hygiene measure.
"""

from __future__ import annotations

import contextlib
import os
import re
import secrets
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import anyio
import structlog
from anyio import to_thread

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = structlog.get_logger()

_BLOB_DIR_MODE = 0o700
_BLOB_FILE_MODE = 0o600

READ_CHUNK_SIZE = 64 * 1024
_SUFFIX_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


class BlobRepository(Protocol):
    """Durable byte storage keyed by an opaque storage key."""

    async def put(self, data: bytes, suggested_name: str) -> str: ...

    async def exists(self, storage_key: str) -> bool: ...

    async def delete(self, storage_key: str) -> bool: ...

    def open_read(self, storage_key: str) -> AsyncIterator[bytes]: ...


def _suffix_for(suggested_name: str) -> str:
    """Keep a short alphanumeric extension from the client filename, drop anything else."""
    suffix = Path(suggested_name).suffix
    if _SUFFIX_PATTERN.match(suffix):
        return suffix.lower()
    return ""


class LocalBlobStorage:
    """Stores blobs as files in a single local directory."""

    def __init__(self, upload_dir: str) -> None:
        self._root = Path(upload_dir).resolve()

    def _path_for(self, storage_key: str) -> Path:
        target = (self._root / storage_key).resolve()
        if target.parent != self._root:
            raise ValueError(f"Path traversal rejected: '{storage_key}' resolves outside upload directory")
        return target

    async def put(self, data: bytes, suggested_name: str) -> str:
        """Write bytes under a new random key and return the key."""
        storage_key = f"{secrets.token_hex(16)}{_suffix_for(suggested_name)}"
        await to_thread.run_sync(self._write_atomic, self._path_for(storage_key), data)
        logger.info("stored blob", storage_key=storage_key, byte_size=len(data))
        return storage_key

    def _write_atomic(self, target: Path, data: bytes) -> None:
        """Write via temp-file-then-rename with owner-only permissions.

        Creates the directory lazily on first write with owner-only permissions.
        """
        self._root.mkdir(mode=_BLOB_DIR_MODE, parents=True, exist_ok=True)
        self._root.chmod(_BLOB_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._root), suffix=".tmp", prefix=".blob_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _BLOB_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise

    async def exists(self, storage_key: str) -> bool:
        return await anyio.Path(self._path_for(storage_key)).is_file()

    async def delete(self, storage_key: str) -> bool:
        """Remove a blob. Return False if it was already gone; other OS errors propagate."""
        try:
            await anyio.Path(self._path_for(storage_key)).unlink()
        except FileNotFoundError:
            return False
        logger.info("deleted blob", storage_key=storage_key)
        return True

    async def open_read(self, storage_key: str) -> AsyncIterator[bytes]:
        """Yield the blob's bytes in chunks. Raises FileNotFoundError if missing."""
        async with await anyio.open_file(self._path_for(storage_key), "rb") as f:
            while chunk := await f.read(READ_CHUNK_SIZE):
                yield chunk
