"""Identity, password hashing and bearer sessions."""

from shared.auth.models import AuthSession, IssuedSession, User
from shared.auth.password import BcryptHasher, PasswordHasher, SimpleHasher, get_hasher
from shared.auth.service import AuthError, AuthService, EmailTakenError
from shared.auth.session_store import AuthSessionStore
from shared.auth.settings import AuthSettings

__all__ = [
    "AuthError",
    "AuthService",
    "AuthSession",
    "AuthSessionStore",
    "AuthSettings",
    "BcryptHasher",
    "EmailTakenError",
    "IssuedSession",
    "PasswordHasher",
    "SimpleHasher",
    "User",
    "get_hasher",
]
