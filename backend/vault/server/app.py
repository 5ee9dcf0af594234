"""Starlette application factory for the linkvault HTTP API."""

from __future__ import annotations

import contextlib
import sqlite3
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from shared.auth import AuthService, AuthSessionStore
from shared.auth.password import get_hasher
from shared.auth.settings import AuthSettings
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.clock import SystemClock
from shared.db import Database, SqliteSessionRepository, SqliteShareRepository, SqliteUserRepository
from shared.logging import setup_logging
from shared.storage import LocalBlobStorage
from vault.auth.backend import BearerTokenBackend
from vault.auth.policy import (
    collect_protected_api_paths,
    optional_auth,
    protected_api,
    public_route,
    validate_route_auth_policy,
)
from vault.server.middleware import SecurityHeadersMiddleware, SlashNormalizationMiddleware
from vault.server.settings import VaultServerSettings
from vault.shares.lifecycle import LifecycleCoordinator
from vault.shares.reaper import Reaper
from vault.shares.registry import ShareRegistry
from vault.views import (
    check_share,
    consume_share,
    delete_share,
    download_share,
    login,
    logout,
    me,
    my_shares,
    register,
    upload_file,
    upload_text,
)

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

    from shared.clock import Clock


def _make_auth_error_handler(
    protected_api_paths: set[str],
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build an HTTPException handler that rewrites 401s on protected JSON endpoints."""

    async def _auth_error_handler(request: Request, exc: Exception) -> Response:
        """Rewrite 401 errors on protected JSON endpoints to JSON responses.

        All other HTTP exceptions delegate to Starlette's default behavior
        (plain-text response with the exception detail).
        """
        http_exc = cast("HTTPException", exc)
        if http_exc.status_code == HTTPStatus.UNAUTHORIZED and request.url.path in protected_api_paths:
            return JSONResponse({"error": "Authentication required"}, status_code=HTTPStatus.UNAUTHORIZED)
        if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
            return Response(status_code=http_exc.status_code, headers=http_exc.headers)
        return PlainTextResponse(http_exc.detail or "", status_code=http_exc.status_code, headers=http_exc.headers)

    return _auth_error_handler


async def _storage_error_handler(request: Request, exc: Exception) -> Response:
    """Log storage failures with request context and hide the details from the caller."""
    logger.error(
        "storage failure",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse({"error": "Server error"}, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


def create_app(
    settings: VaultServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
    *,
    clock: Clock | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = VaultServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()
    if clock is None:
        clock = SystemClock()

    routes = [
        # Public routes
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/api/auth/register", public_route(register), methods=["POST"], name="register"),
        Route("/api/auth/login", public_route(login), methods=["POST"], name="login"),
        Route(
            "/api/share/{share_id}/download",
            public_route(download_share),
            methods=["GET"],
            name="download_share",
        ),
        # Protected JSON routes (return 401 JSON when unauthenticated)
        Route("/api/auth/me", protected_api(me), methods=["GET"], name="me"),
        Route("/api/auth/logout", protected_api(logout), methods=["POST"], name="logout"),
        Route("/api/my/shares", protected_api(my_shares), methods=["GET"], name="my_shares"),
        # Open to anonymous callers; ownership is recorded or checked when authenticated
        Route("/api/upload/text", optional_auth(upload_text), methods=["POST"], name="upload_text"),
        Route("/api/upload/file", optional_auth(upload_file), methods=["POST"], name="upload_file"),
        Route("/api/share/{share_id}/check", optional_auth(check_share), methods=["GET"], name="check_share"),
        Route("/api/share/{share_id}", optional_auth(consume_share), methods=["POST"], name="consume_share"),
        Route("/api/share/{share_id}", optional_auth(delete_share), methods=["DELETE"], name="delete_share"),
    ]

    validate_route_auth_policy(routes)
    protected_api_paths = collect_protected_api_paths(routes)

    # Initialize database, auth and share components
    db = Database(auth_settings.database_path)
    db.connect()
    hasher = get_hasher(auth_settings.password_hasher)
    session_store = AuthSessionStore(SqliteSessionRepository(db), clock, ttl_seconds=auth_settings.session_ttl_seconds)
    auth_service = AuthService(SqliteUserRepository(db), session_store, password_hasher=hasher, clock=clock)

    share_repo = SqliteShareRepository(db)
    blobs = LocalBlobStorage(settings.upload_dir)
    registry = ShareRegistry(share_repo, blobs, hasher, clock, settings.share_limits())
    coordinator = LifecycleCoordinator(
        share_repo,
        blobs,
        hasher,
        clock,
        download_token_ttl_seconds=settings.download_token_ttl_seconds,
    )
    reaper = Reaper(share_repo, coordinator, session_store, clock, interval_seconds=settings.reaper_interval_seconds)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        reaper.start()
        yield
        await reaper.stop()
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            HTTPException: _make_auth_error_handler(protected_api_paths),
            sqlite3.Error: _storage_error_handler,
            OSError: _storage_error_handler,
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(AuthenticationMiddleware, backend=BearerTokenBackend(auth_service))  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Delete-Token"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.clock = clock
    app.state.auth_service = auth_service
    app.state.registry = registry
    app.state.coordinator = coordinator
    app.state.reaper = reaper

    logger.info("vault server ready", upload_dir=settings.upload_dir)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory vault.server.app:get_app."""
    s = VaultServerSettings()
    auth = AuthSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
