"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from habit_tracker.api.admin import router as admin_router
from habit_tracker.api.schemas import (
    AuthUserPayload,
    MissionCreatePayload,
    PendingOperationPayload,
)
from habit_tracker.app_logging import configure_logging
from habit_tracker.containers import AppContainer
from habit_tracker.domain.missions import (
    DailyProgress,
    Mission,
    MissionCompletion,
    NewMission,
)
from habit_tracker.domain.models import AuthUser, Profile
from habit_tracker.services.batch_queue import BatchQueueError
from habit_tracker.services.data_access import WATCHED_TABLES

logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(BatchQueueError)
    async def batch_queue_error(
        _request: Request, exc: BatchQueueError
    ) -> JSONResponse:
        logger.warning("Batch queue rejected operation: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/profiles")
    async def ensure_profile(
        payload: AuthUserPayload, request: Request
    ) -> dict[str, object]:
        """Return the caller's profile, creating it on first sign-in."""
        data_access = _container(request).data_access
        user = AuthUser(
            id=payload.id,
            email=payload.email,
            full_name=payload.full_name,
            avatar_url=payload.avatar_url,
        )
        with _remote_call("ensure_profile"):
            profile = await data_access.profile_service.ensure_profile(user)
        return _serialize_profile(profile)

    @app.get("/users/{user_id}/missions")
    async def list_missions(
        user_id: UUID, request: Request, use_cache: bool = True
    ) -> dict[str, object]:
        """Return a user's missions."""
        data_access = _container(request).data_access
        with _remote_call("list_missions"):
            missions = await data_access.mission_service.get_user_missions(
                user_id, use_cache=use_cache
            )
        return {"missions": [_serialize_mission(mission) for mission in missions]}

    @app.post("/users/{user_id}/missions", status_code=status.HTTP_201_CREATED)
    async def create_mission(
        user_id: UUID, payload: MissionCreatePayload, request: Request
    ) -> dict[str, object]:
        """Create a mission for a user."""
        data_access = _container(request).data_access
        new_mission = NewMission(
            user_id=user_id,
            title=payload.title,
            category=payload.category,
            frequency=payload.frequency,
            sticker=payload.sticker,
            is_custom=payload.is_custom,
        )
        with _remote_call("create_mission"):
            mission = await data_access.mission_service.create_mission(new_mission)
        return _serialize_mission(mission)

    @app.get("/users/{user_id}/missions/by-category")
    async def missions_by_category(
        user_id: UUID, request: Request
    ) -> dict[str, object]:
        """Return a user's missions grouped by category."""
        data_access = _container(request).data_access
        with _remote_call("missions_by_category"):
            groups = await data_access.mission_service.missions_by_category(user_id)
        return {
            "categories": [
                {
                    "category": category.value,
                    "missions": [_serialize_mission(mission) for mission in missions],
                }
                for category, missions in groups
            ]
        }

    @app.delete("/missions/{mission_id}")
    async def delete_mission(mission_id: UUID, request: Request) -> dict[str, str]:
        """Delete a mission through the batch queue."""
        data_access = _container(request).data_access
        with _remote_call("delete_mission"):
            await data_access.mission_service.delete_mission(mission_id)
        return {"status": "deleted"}

    @app.get("/users/{user_id}/completions/today")
    async def today_completions(
        user_id: UUID, request: Request, use_cache: bool = True
    ) -> dict[str, object]:
        """Return today's completions for a user."""
        data_access = _container(request).data_access
        with _remote_call("today_completions"):
            completions = await data_access.completion_service.get_today_completions(
                user_id, use_cache=use_cache
            )
        return {
            "completions": [_serialize_completion(item) for item in completions]
        }

    @app.post(
        "/users/{user_id}/missions/{mission_id}/complete",
        status_code=status.HTTP_201_CREATED,
    )
    async def complete_mission(
        user_id: UUID, mission_id: UUID, request: Request
    ) -> dict[str, object]:
        """Mark a mission completed for today."""
        data_access = _container(request).data_access
        with _remote_call("complete_mission"):
            completion = await data_access.completion_service.complete_mission(
                user_id, mission_id
            )
        return _serialize_completion(completion)

    @app.delete("/users/{user_id}/missions/{mission_id}/complete")
    async def uncomplete_mission(
        user_id: UUID, mission_id: UUID, request: Request
    ) -> dict[str, str]:
        """Undo today's completion through the batch queue."""
        data_access = _container(request).data_access
        with _remote_call("uncomplete_mission"):
            await data_access.completion_service.uncomplete_mission(
                user_id, mission_id
            )
        return {"status": "uncompleted"}

    @app.post("/users/{user_id}/missions/{mission_id}/toggle")
    async def toggle_completion(
        user_id: UUID, mission_id: UUID, request: Request
    ) -> dict[str, bool]:
        """Flip today's completion state for a mission."""
        data_access = _container(request).data_access
        with _remote_call("toggle_completion"):
            completed = await data_access.completion_service.toggle_completion(
                user_id, mission_id
            )
        return {"completed": completed}

    @app.get("/users/{user_id}/progress")
    async def daily_progress(user_id: UUID, request: Request) -> dict[str, object]:
        """Return today's progress for a user."""
        data_access = _container(request).data_access
        with _remote_call("daily_progress"):
            progress = await data_access.daily_progress(user_id)
        return _serialize_progress(progress)

    @app.post("/users/{user_id}/preload")
    async def preload(user_id: UUID, request: Request) -> dict[str, str]:
        """Warm the cache for a user."""
        data_access = _container(request).data_access
        with _remote_call("preload_user_data"):
            await data_access.preload_user_data(user_id)
        return {"status": "ok"}

    @app.post("/realtime/{table}/{user_id}")
    async def realtime_change(
        table: str, user_id: UUID, request: Request
    ) -> dict[str, str]:
        """Reload cached data after a change notification for a table."""
        if table not in WATCHED_TABLES:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unsupported table: {table}",
            )
        data_access = _container(request).data_access
        with _remote_call("handle_remote_change"):
            await data_access.handle_remote_change(table, user_id)
        return {"status": "reloaded"}

    @app.post("/pending", status_code=status.HTTP_202_ACCEPTED)
    async def record_pending(
        payload: PendingOperationPayload, request: Request
    ) -> dict[str, str]:
        """Record a mutation to replay on the next sync."""
        data_access = _container(request).data_access
        data_access.pending_sync.record(payload.operation_type, payload.payload)
        return {"status": "recorded"}

    @app.post("/sync")
    async def sync_pending(request: Request) -> dict[str, int]:
        """Replay recorded mutations."""
        data_access = _container(request).data_access
        result = await data_access.sync_pending_operations()
        return {
            "replayed": result.replayed,
            "failed": result.failed,
            "skipped": result.skipped,
        }

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@contextmanager
def _remote_call(action: str) -> Iterator[None]:
    """Translate remote store failures into ``502`` responses."""
    try:
        yield
    except (HTTPException, BatchQueueError):
        raise
    except Exception as exc:
        logger.exception("Remote call failed: %s", action)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=f"{action} failed"
        ) from exc


def _serialize_profile(profile: Profile) -> dict[str, object]:
    return {
        "id": str(profile.id),
        "nickname": profile.nickname,
        "avatar_url": profile.avatar_url,
        "created_at": profile.created_at.isoformat(),
    }


def _serialize_mission(mission: Mission) -> dict[str, object]:
    return {
        "id": str(mission.id),
        "user_id": str(mission.user_id),
        "title": mission.title,
        "category": mission.category.value,
        "frequency": mission.frequency.value,
        "sticker": mission.sticker,
        "is_custom": mission.is_custom,
        "created_at": mission.created_at.isoformat(),
    }


def _serialize_completion(completion: MissionCompletion) -> dict[str, object]:
    return {
        "id": str(completion.id),
        "user_id": str(completion.user_id),
        "mission_id": str(completion.mission_id),
        "completed_at": completion.completed_at.isoformat(),
    }


def _serialize_progress(progress: DailyProgress) -> dict[str, object]:
    return {
        "day": progress.day.isoformat(),
        "completed": progress.completed,
        "total": progress.total,
        "percent": progress.percent,
    }
