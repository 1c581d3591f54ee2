"""Admin API endpoints for cache and queue maintenance."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from habit_tracker.containers import AppContainer

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


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/cache", dependencies=[Depends(require_admin)])
async def cache_stats(request: Request) -> dict[str, object]:
    """Return cache entry counts."""
    container: AppContainer = request.app.state.container
    return {"cache": container.data_access.cache.stats()}


@router.post("/cache/clear", dependencies=[Depends(require_admin)])
async def clear_cache(request: Request) -> dict[str, str]:
    """Drop every cached entry, e.g. under memory pressure."""
    container: AppContainer = request.app.state.container
    container.data_access.clear_cache()
    return {"status": "cleared"}


@router.post("/cache/invalidate/{user_id}", dependencies=[Depends(require_admin)])
async def invalidate_user(user_id: UUID, request: Request) -> dict[str, int]:
    """Drop every cached entry owned by a user."""
    container: AppContainer = request.app.state.container
    return {"removed": container.data_access.invalidate_user(user_id)}


@router.get("/queue", dependencies=[Depends(require_admin)])
async def queue_stats(request: Request) -> dict[str, object]:
    """Return batch queue counters."""
    container: AppContainer = request.app.state.container
    return {"queue": container.data_access.queue.stats()}


@router.get("/connection", dependencies=[Depends(require_admin)])
async def connection(request: Request) -> dict[str, bool]:
    """Report whether the remote store is reachable."""
    container: AppContainer = request.app.state.container
    return {"connected": await container.data_access.check_connection()}
