"""Secret hashing: protocol, bcrypt (production), and salted SHA-256 (tests).

Used for account passwords and for share access secrets alike. Both
hashers return a single string that embeds the salt next to the digest.

BcryptHasher is CPU-bound (~100ms per call) and runs off the event loop
using anyio.to_thread.run_sync() to avoid blocking under concurrent requests.

SimpleHasher uses salted SHA-256 with a "simple$" prefix for instant hashing.
It is intended for tests only.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

MAX_SECRET_BYTES = 72  # bcrypt rejects longer inputs


@runtime_checkable
class PasswordHasher(Protocol):
    """Hash and verify secrets."""

    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...


def secret_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_SECRET_BYTES


class BcryptHasher:
    """Production hasher using bcrypt (async, off-thread)."""

    async def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        return await to_thread.run_sync(lambda: bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8"))

    async def verify(self, plain: str, hashed: str) -> bool:
        """Return False for malformed hashes or oversized input rather than raising."""
        if secret_too_long(plain):
            return False
        encoded_plain = plain.encode("utf-8")
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False


_SIMPLE_PREFIX = "simple"
_SIMPLE_PARTS = 3  # simple$<salt>$<digest>


def _simple_digest(salt: str, plain: str) -> str:
    return hashlib.sha256(f"{salt}:{plain}".encode()).hexdigest()


class SimpleHasher:
    """Fast salted SHA-256 hasher for tests. Not suitable for production use."""

    async def hash(self, plain: str) -> str:
        salt = secrets.token_hex(8)
        return f"{_SIMPLE_PREFIX}${salt}${_simple_digest(salt, plain)}"

    async def verify(self, plain: str, hashed: str) -> bool:
        parts = hashed.split("$")
        if len(parts) != _SIMPLE_PARTS or parts[0] != _SIMPLE_PREFIX:
            return False
        return hmac.compare_digest(parts[2], _simple_digest(parts[1], plain))


def get_hasher(name: str = "bcrypt") -> PasswordHasher:
    """Return a PasswordHasher by name ("bcrypt" or "simple")."""
    if name == "bcrypt":
        return BcryptHasher()
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
