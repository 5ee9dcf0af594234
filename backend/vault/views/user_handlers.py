"""Owner dashboard endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from vault.views.responses import share_summary

if TYPE_CHECKING:
    from starlette.requests import Request

    from vault.auth.models import AuthenticatedUser
    from vault.shares.registry import ShareRegistry


async def my_shares(request: Request) -> JSONResponse:
    """GET /api/my/shares - the caller's shares, newest first."""
    registry: ShareRegistry = request.app.state.registry
    current: AuthenticatedUser = request.user
    shares = await registry.list_by_owner(current.user_id)
    return JSONResponse({"shares": [share_summary(share) for share in shares]})
