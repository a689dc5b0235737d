"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from fan_moments.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return every stored session."""
    container: AppContainer = request.app.state.container
    return {"sessions": await container.admin_service.list_sessions()}


@router.post("/sessions/cleanup", dependencies=[Depends(require_admin)])
async def cleanup_sessions(
    request: Request, max_age_days: int | None = None
) -> dict[str, object]:
    """Delete session objects older than the retention window."""
    container: AppContainer = request.app.state.container
    days = (
        max_age_days
        if max_age_days is not None
        else container.settings.session_retention_days
    )
    deleted = container.admin_service.cleanup_old_sessions(timedelta(days=days))
    return {"deleted_count": deleted}


@router.delete("/sessions", dependencies=[Depends(require_admin)])
async def clear_sessions(request: Request) -> dict[str, object]:
    """Delete every stored session object."""
    container: AppContainer = request.app.state.container
    result = container.admin_service.clear_all_sessions()
    return {"deleted_count": result.deleted_count, "errors": result.errors}
