"""Vault authentication: Starlette backend, user model, and route policy."""

from vault.auth.backend import BearerTokenBackend
from vault.auth.models import AuthenticatedUser, caller_id
from vault.auth.policy import optional_auth, protected_api, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedUser",
    "BearerTokenBackend",
    "caller_id",
    "optional_auth",
    "protected_api",
    "public_route",
    "validate_route_auth_policy",
]
