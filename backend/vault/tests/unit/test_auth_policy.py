"""Tests for route auth policy markers and startup validation."""

from __future__ import annotations

import pytest
from starlette.applications import Starlette
from starlette.authentication import AuthCredentials, UnauthenticatedUser
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.routing import Mount, Route

from vault.auth.policy import (
    AUTH_POLICY_ATTR,
    collect_protected_api_paths,
    optional_auth,
    protected_api,
    public_route,
    validate_route_auth_policy,
)


def _make_request(*, authenticated: bool) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/thing",
        "query_string": b"",
        "headers": [],
        "auth": AuthCredentials(["authenticated"] if authenticated else []),
        "user": UnauthenticatedUser(),
    }
    return Request(scope)


def _make_handler() -> object:
    """Return a fresh async handler with no attributes from prior tests."""

    async def handler(request: Request) -> str:
        return "ok"

    return handler


class TestProtectedApi:
    async def test_unauthenticated_raises_401(self) -> None:
        wrapped = protected_api(_make_handler())

        with pytest.raises(HTTPException) as exc_info:
            await wrapped(_make_request(authenticated=False))

        assert exc_info.value.status_code == 401

    async def test_authenticated_passes_through(self) -> None:
        wrapped = protected_api(_make_handler())
        assert await wrapped(_make_request(authenticated=True)) == "ok"


class TestOpenPolicies:
    @pytest.mark.parametrize("policy", [public_route, optional_auth])
    async def test_does_not_block_unauthenticated(self, policy) -> None:
        wrapped = policy(_make_handler())
        assert await wrapped(_make_request(authenticated=False)) == "ok"

    def test_markers(self) -> None:
        assert getattr(public_route(_make_handler()), AUTH_POLICY_ATTR) == "public"
        assert getattr(optional_auth(_make_handler()), AUTH_POLICY_ATTR) == "optional"
        assert getattr(protected_api(_make_handler()), AUTH_POLICY_ATTR) == "protected_api"

    def test_marker_not_set_on_original(self) -> None:
        handler = _make_handler()
        public_route(handler)
        assert not hasattr(handler, AUTH_POLICY_ATTR)


class TestValidateRouteAuthPolicy:
    def test_all_routes_classified_passes(self) -> None:
        routes = [
            Route("/a", public_route(_make_handler()), methods=["GET"], name="a"),
            Route("/b", protected_api(_make_handler()), methods=["GET"], name="b"),
            Route("/c", optional_auth(_make_handler()), methods=["GET"], name="c"),
        ]

        validate_route_auth_policy(routes)

    def test_unclassified_route_raises_runtime_error(self) -> None:
        routes = [
            Route("/ok", public_route(_make_handler()), methods=["GET"], name="ok"),
            Route("/bad", _make_handler(), methods=["GET"], name="bad"),
        ]

        with pytest.raises(RuntimeError, match=r"Unclassified routes missing auth policy: /bad \(bad\)"):
            validate_route_auth_policy(routes)

    def test_mount_is_exempt(self) -> None:
        routes = [
            Route("/a", public_route(_make_handler()), methods=["GET"], name="a"),
            Mount("/static", app=Starlette(), name="static"),
        ]

        validate_route_auth_policy(routes)


class TestCollectProtectedApiPaths:
    def test_only_protected_api_paths(self) -> None:
        routes = [
            Route("/api/my/shares", protected_api(_make_handler()), methods=["GET"]),
            Route("/api/share/{share_id}", optional_auth(_make_handler()), methods=["POST"]),
            Route("/health", public_route(_make_handler()), methods=["GET"]),
        ]

        assert collect_protected_api_paths(routes) == {"/api/my/shares"}
