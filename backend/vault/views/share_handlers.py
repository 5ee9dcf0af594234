"""Share endpoints: upload, pre-check, consume, download and delete."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.responses import JSONResponse, StreamingResponse

from vault.auth.models import caller_id
from vault.shares.gate import precheck
from vault.shares.types import (
    AccessReason,
    FileUpload,
    LoginRequiredError,
    ShareOptions,
    ShareValidationError,
)
from vault.views.responses import denial_response, error_response, iso, parse_json_body

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.clock import Clock
    from shared.dal.models import Share
    from vault.server.settings import VaultServerSettings
    from vault.shares.lifecycle import LifecycleCoordinator
    from vault.shares.registry import ShareRegistry
    from vault.shares.types import CreatedShare

logger = structlog.get_logger()

_OPTION_FIELDS = ("password", "oneTime", "maxViews", "expiresAt", "ownerOnly")


def _validation_message(exc: ValidationError) -> str:
    """Pull the caller-facing message out of the first validation error."""
    error = exc.errors()[0]
    original = error.get("ctx", {}).get("error")
    if isinstance(original, ValueError):
        return str(original)
    return f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}"


def _created_payload(created: CreatedShare) -> dict[str, object]:
    share = created.share
    payload: dict[str, object] = {
        "shareId": share.share_id,
        "deleteToken": created.delete_token,
        "ownerOnly": share.owner_only,
        "expiresAt": iso(share.expires_at),
    }
    if share.file is not None:
        payload["filename"] = share.file.display_name
        payload["filesize"] = share.file.byte_size
    return payload


def _create_error(exc: ShareValidationError) -> JSONResponse:
    if isinstance(exc, LoginRequiredError):
        return error_response(str(exc), HTTPStatus.UNAUTHORIZED)
    return error_response(str(exc), HTTPStatus.BAD_REQUEST)


async def upload_text(request: Request) -> JSONResponse:
    """POST /api/upload/text - create a text share from a JSON body."""
    registry: ShareRegistry = request.app.state.registry
    body = await parse_json_body(request)
    if body is None:
        return error_response("Invalid JSON body", HTTPStatus.BAD_REQUEST)

    try:
        options = ShareOptions.model_validate(body)
    except ValidationError as e:
        return error_response(_validation_message(e), HTTPStatus.BAD_REQUEST)

    text = body.get("text")
    try:
        created = await registry.create_text(
            text if isinstance(text, str) else None,
            options,
            owner_id=caller_id(request.user),
        )
    except ShareValidationError as e:
        return _create_error(e)
    return JSONResponse(_created_payload(created))


async def upload_file(request: Request) -> JSONResponse:
    """POST /api/upload/file - create a file share from a multipart form."""
    registry: ShareRegistry = request.app.state.registry
    settings: VaultServerSettings = request.app.state.settings

    async with request.form() as form:
        try:
            options = ShareOptions.model_validate({k: form[k] for k in _OPTION_FIELDS if k in form})
        except ValidationError as e:
            return error_response(_validation_message(e), HTTPStatus.BAD_REQUEST)

        item = form.get("file")
        upload = None
        if isinstance(item, UploadFile):
            if item.size is not None and item.size > settings.max_file_size:
                max_mb = settings.max_file_size // (1024 * 1024)
                return error_response(f"File too large. Max size is {max_mb}MB.", HTTPStatus.BAD_REQUEST)
            upload = FileUpload(
                data=await item.read(),
                filename=item.filename or "download",
                content_type=item.content_type or "application/octet-stream",
            )

        try:
            created = await registry.create_file(upload, options, owner_id=caller_id(request.user))
        except ShareValidationError as e:
            return _create_error(e)
    return JSONResponse(_created_payload(created))


async def check_share(request: Request) -> JSONResponse:
    """GET /api/share/{share_id}/check - report gating without recording a view."""
    registry: ShareRegistry = request.app.state.registry
    clock: Clock = request.app.state.clock
    share = await registry.find(request.path_params["share_id"])
    if share is None:
        return JSONResponse({"exists": False})

    result = precheck(share, clock.now(), caller_id(request.user))
    return JSONResponse(
        {
            "exists": True,
            "accessible": result.accessible,
            "ownerOnly": share.owner_only,
            "requiresAuth": result.requires_auth,
            "requiresPassword": result.requires_secret,
            "type": share.kind.value,
            "expiresAt": iso(share.expires_at),
            "reason": result.reason.value if result.reason is not None else None,
        },
    )


def _consumed_payload(share: Share, download_token: str | None) -> dict[str, object]:
    payload: dict[str, object] = {
        "shareId": share.share_id,
        "type": share.kind.value,
        "ownerOnly": share.owner_only,
        "expiresAt": iso(share.expires_at),
        "views": share.view_count,
        "maxViews": share.view_limit,
        "oneTime": share.one_shot,
        "createdAt": iso(share.created_at),
    }
    if share.file is None:
        payload["content"] = share.text
        return payload
    payload["filename"] = share.file.display_name
    payload["filesize"] = share.file.byte_size
    payload["mimetype"] = share.file.content_type
    payload["downloadUrl"] = f"/api/share/{share.share_id}/download?token={quote(download_token or '')}"
    return payload


async def consume_share(request: Request) -> JSONResponse:
    """POST /api/share/{share_id} - open a share, recording one view."""
    coordinator: LifecycleCoordinator = request.app.state.coordinator

    raw_body = await request.body()
    if not raw_body.strip():
        body = {}
    else:
        try:
            body = json.loads(raw_body)
        except (ValueError, json.JSONDecodeError):  # fmt: skip
            return error_response("Invalid JSON body", HTTPStatus.BAD_REQUEST)
    password = body.get("password") if isinstance(body, dict) else None

    result = await coordinator.consume(
        request.path_params["share_id"],
        caller_id(request.user),
        password if isinstance(password, str) and password else None,
    )
    if not result.ok or result.share is None:
        return denial_response(result.reason or AccessReason.CONFLICT)
    return JSONResponse(_consumed_payload(result.share, result.download_token))


def _content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_").replace("?", "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


async def download_share(request: Request) -> Response:
    """GET /api/share/{share_id}/download?token= - stream a file share once per token."""
    coordinator: LifecycleCoordinator = request.app.state.coordinator
    result = await coordinator.redeem_download(request.path_params["share_id"], request.query_params.get("token"))
    if not result.ok or result.handle is None:
        return denial_response(result.reason or AccessReason.NOT_FOUND)

    handle = result.handle
    return StreamingResponse(
        handle.stream(),
        media_type=handle.file.content_type,
        headers={
            "Content-Disposition": _content_disposition(handle.file.display_name),
            "Content-Length": str(handle.file.byte_size),
        },
        background=BackgroundTask(handle.finish),
    )


async def delete_share(request: Request) -> JSONResponse:
    """DELETE /api/share/{share_id} - owner or delete-token holder removes a share."""
    coordinator: LifecycleCoordinator = request.app.state.coordinator
    token = request.headers.get("x-delete-token") or request.query_params.get("deleteToken")

    result = await coordinator.delete_by_capability(request.path_params["share_id"], caller_id(request.user), token)
    if result.ok:
        return JSONResponse({"message": "Share deleted"})
    if result.reason == AccessReason.NOT_FOUND:
        return error_response("Share not found", HTTPStatus.NOT_FOUND, reason=result.reason)
    if result.reason == AccessReason.BAD_DELETE_TOKEN and not token:
        return denial_response(result.reason, message="Delete token required")
    return denial_response(result.reason or AccessReason.CONFLICT)
