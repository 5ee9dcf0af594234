"""Auth endpoints: register, login, current user and logout."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from shared.auth.service import AuthError, AuthService, EmailTakenError
from vault.views.responses import error_response, iso, parse_json_body, user_payload

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.auth.models import IssuedSession, User
    from vault.auth.models import AuthenticatedUser


def _credentials(body: dict | None) -> tuple[str, str] | None:
    if body is None:
        return None
    email = body.get("email")
    password = body.get("password")
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return None
    return email, password


def _session_response(user: User, issued: IssuedSession, status_code: int = HTTPStatus.OK) -> JSONResponse:
    return JSONResponse(
        {"token": issued.token, "tokenExpiresAt": iso(issued.expires_at), "user": user_payload(user)},
        status_code=status_code,
    )


async def register(request: Request) -> JSONResponse:
    """POST /api/auth/register - create account and start a session."""
    auth_service: AuthService = request.app.state.auth_service
    body = await parse_json_body(request)
    credentials = _credentials(body)
    if credentials is None:
        return error_response("Email and password are required", HTTPStatus.BAD_REQUEST)
    name = body.get("name") if body is not None else None

    try:
        user = await auth_service.register(*credentials, display_name=name if isinstance(name, str) else None)
    except EmailTakenError as e:
        return error_response(str(e), HTTPStatus.CONFLICT)
    except AuthError as e:
        return error_response(str(e), HTTPStatus.BAD_REQUEST)

    issued = await auth_service.start_session(user)
    return _session_response(user, issued, status_code=HTTPStatus.CREATED)


async def login(request: Request) -> JSONResponse:
    """POST /api/auth/login - validate credentials and start a session."""
    auth_service: AuthService = request.app.state.auth_service
    credentials = _credentials(await parse_json_body(request))
    if credentials is None:
        return error_response("Email and password are required", HTTPStatus.BAD_REQUEST)

    try:
        user, issued = await auth_service.login(*credentials)
    except AuthError as e:
        return error_response(str(e), HTTPStatus.UNAUTHORIZED)
    return _session_response(user, issued)


async def me(request: Request) -> JSONResponse:
    current: AuthenticatedUser = request.user
    return JSONResponse({"user": user_payload(current.user)})


async def logout(request: Request) -> JSONResponse:
    """POST /api/auth/logout - revoke the presenting session only."""
    auth_service: AuthService = request.app.state.auth_service
    current: AuthenticatedUser = request.user
    await auth_service.logout(current.session_id)
    return JSONResponse({"message": "Logged out"})
