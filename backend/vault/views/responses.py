"""JSON helpers shared by the view handlers."""

from __future__ import annotations

import json
from datetime import UTC
from http import HTTPStatus
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from vault.shares.types import AccessReason

if TYPE_CHECKING:
    from datetime import datetime

    from starlette.requests import Request

    from shared.auth.models import User
    from shared.dal.models import Share

# Caller-facing status and message for every denial the engine can report.
DENIALS: dict[AccessReason, tuple[HTTPStatus, str]] = {
    AccessReason.NOT_FOUND: (HTTPStatus.FORBIDDEN, "Invalid share link"),
    AccessReason.OWNER_REQUIRED: (HTTPStatus.FORBIDDEN, "Authentication required for this share"),
    AccessReason.EXPIRED: (HTTPStatus.GONE, "Share expired"),
    AccessReason.EXHAUSTED: (HTTPStatus.GONE, "Max views reached"),
    AccessReason.BAD_SECRET: (HTTPStatus.FORBIDDEN, "Invalid password"),
    AccessReason.BAD_TOKEN: (HTTPStatus.FORBIDDEN, "Invalid download token"),
    AccessReason.TOKEN_EXPIRED: (HTTPStatus.GONE, "Download token expired"),
    AccessReason.UNAVAILABLE: (HTTPStatus.GONE, "File unavailable"),
    AccessReason.NOT_OWNER: (HTTPStatus.FORBIDDEN, "Only owner can delete this share"),
    AccessReason.BAD_DELETE_TOKEN: (HTTPStatus.FORBIDDEN, "Invalid delete token"),
    AccessReason.CONFLICT: (HTTPStatus.CONFLICT, "Share changed concurrently, try again"),
}


def error_response(message: str, status_code: int, *, reason: AccessReason | None = None) -> JSONResponse:
    body: dict[str, str] = {"error": message}
    if reason is not None:
        body["reason"] = reason.value
    return JSONResponse(body, status_code=status_code)


def denial_response(reason: AccessReason, *, message: str | None = None) -> JSONResponse:
    status, default_message = DENIALS[reason]
    return error_response(message or default_message, status, reason=reason)


def iso(instant: datetime | None) -> str | None:
    """Format a timestamp as ISO 8601 UTC with millisecond precision."""
    if instant is None:
        return None
    return instant.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def parse_json_body(request: Request) -> dict | None:
    """Parse JSON body from request. Return None on failure."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError):  # fmt: skip
        return None
    if not isinstance(body, dict):
        return None
    return body


def user_payload(user: User) -> dict[str, str | None]:
    return {
        "id": user.user_id,
        "email": user.email,
        "name": user.display_name,
        "createdAt": iso(user.created_at),
    }


def share_summary(share: Share) -> dict[str, object]:
    """Owner-facing listing entry. Never includes secrets or content."""
    return {
        "shareId": share.share_id,
        "type": share.kind.value,
        "filename": share.file.display_name if share.file is not None else None,
        "ownerOnly": share.owner_only,
        "oneTime": share.one_shot,
        "views": share.view_count,
        "maxViews": share.view_limit,
        "expiresAt": iso(share.expires_at),
        "createdAt": iso(share.created_at),
    }
