"""Route auth policy helpers for fail-closed authorization.

Each helper wraps a route endpoint and sets the ``AUTH_POLICY_ATTR`` marker
so that startup validation can verify every route has an explicit auth policy.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

from starlette.authentication import requires
from starlette.routing import Mount, Route

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import BaseRoute

AUTH_POLICY_ATTR = "__auth_policy__"


def protected_api(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Require authentication; raise 401 for unauthenticated API requests."""
    wrapped = requires("authenticated", status_code=401)(endpoint)
    setattr(wrapped, AUTH_POLICY_ATTR, "protected_api")
    return wrapped


def _marked(endpoint: Callable[..., Any], policy: str) -> Callable[..., Any]:
    """Return a thin wrapper carrying the policy marker.

    The marker lives on the wrapper, not on the original callable, so reusing
    the same function on another route without wrapping is still caught.
    """

    @functools.wraps(endpoint)
    async def wrapper(request: Request, **kwargs: str) -> Response:
        return await endpoint(request, **kwargs)

    setattr(wrapper, AUTH_POLICY_ATTR, policy)
    return wrapper


def public_route(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Mark endpoint as explicitly public (identity is never consulted)."""
    return _marked(endpoint, "public")


def optional_auth(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Mark endpoint as open to anonymous callers that behaves differently for authenticated ones."""
    return _marked(endpoint, "optional")


def collect_protected_api_paths(routes: list[BaseRoute]) -> set[str]:
    """Return the set of path strings for routes marked ``protected_api``."""
    paths: set[str] = set()
    for route in routes:
        if isinstance(route, Route) and getattr(route.endpoint, AUTH_POLICY_ATTR, None) == "protected_api":
            paths.add(route.path)
    return paths


def validate_route_auth_policy(routes: list[BaseRoute]) -> None:
    """Verify every Route has an auth policy marker. Mount routes are exempt.

    Raises RuntimeError listing all unclassified routes if any are found.
    """
    unclassified: list[str] = []
    for route in routes:
        if isinstance(route, Mount):
            continue
        if isinstance(route, Route) and not hasattr(route.endpoint, AUTH_POLICY_ATTR):
            name = route.name or getattr(route.endpoint, "__name__", "unknown")
            unclassified.append(f"{route.path} ({name})")

    if unclassified:
        details = ", ".join(unclassified)
        msg = f"Unclassified routes missing auth policy: {details}"
        raise RuntimeError(msg)
