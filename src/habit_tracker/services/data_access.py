"""Data-access facade owning the cache and the batch queue."""

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from habit_tracker.domain.missions import DailyProgress
from habit_tracker.services.batch_queue import BatchQueue
from habit_tracker.services.cache import DEFAULT_TTL_SECONDS, InMemoryCache
from habit_tracker.services.completions import (
    COMPLETIONS_TTL_SECONDS,
    CompletionRepository,
    CompletionService,
)
from habit_tracker.services.missions import MissionRepository, MissionService
from habit_tracker.services.profiles import ProfileRepository, ProfileService
from habit_tracker.services.storage import KeyValueStore
from habit_tracker.services.sync import PendingOperationSync, SyncResult

MISSIONS_TABLE = "user_missions"
COMPLETIONS_TABLE = "mission_completions"
WATCHED_TABLES = frozenset({MISSIONS_TABLE, COMPLETIONS_TABLE})

_logger = logging.getLogger(__name__)


@dataclass
class DataAccess:
    """Entry point for UI-facing reads and writes.

    Owns one cache and one batch queue shared by the services below. Build it
    with :meth:`create` and release it with :meth:`teardown`.
    """

    cache: InMemoryCache
    queue: BatchQueue
    profile_service: ProfileService
    mission_service: MissionService
    completion_service: CompletionService
    pending_sync: PendingOperationSync

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        profile_repository: ProfileRepository,
        mission_repository: MissionRepository,
        completion_repository: CompletionRepository,
        store: KeyValueStore,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        completions_ttl_seconds: float = COMPLETIONS_TTL_SECONDS,
        batch_size: int = 10,
        batch_pause_seconds: float = 0.01,
        batch_max_pending: int | None = 1000,
    ) -> "DataAccess":
        """Wire a facade with fresh cache and queue instances."""
        cache = InMemoryCache(default_ttl_seconds=cache_ttl_seconds)
        queue = BatchQueue(
            batch_size=batch_size,
            pause_seconds=batch_pause_seconds,
            max_pending=batch_max_pending,
        )
        mission_service = MissionService(mission_repository, cache, queue)
        completion_service = CompletionService(
            completion_repository, cache, queue, ttl_seconds=completions_ttl_seconds
        )
        return cls(
            cache=cache,
            queue=queue,
            profile_service=ProfileService(profile_repository, cache),
            mission_service=mission_service,
            completion_service=completion_service,
            pending_sync=PendingOperationSync(
                store=store,
                mission_service=mission_service,
                completion_service=completion_service,
            ),
        )

    async def daily_progress(self, user_id: UUID) -> DailyProgress:
        """Return how many of the user's missions were completed today."""
        missions, completions = await asyncio.gather(
            self.mission_service.get_user_missions(user_id),
            self.completion_service.get_today_completions(user_id),
        )
        mission_ids = {mission.id for mission in missions}
        completed = len(
            {c.mission_id for c in completions if c.mission_id in mission_ids}
        )
        total = len(missions)
        return DailyProgress(
            day=self.completion_service.today(),
            completed=completed,
            total=total,
            percent=_round_percent(completed, total),
        )

    async def preload_user_data(self, user_id: UUID) -> None:
        """Warm the cache with the user's missions and today's completions."""
        await asyncio.gather(
            self.mission_service.get_user_missions(user_id),
            self.completion_service.get_today_completions(user_id),
        )

    def invalidate_user(self, user_id: UUID) -> int:
        """Drop every cached entry owned by the user."""
        return self.cache.invalidate(owner_id=str(user_id))

    def clear_cache(self) -> None:
        """Drop every cached entry."""
        self.cache.clear()

    async def check_connection(self) -> bool:
        """Return True when the remote store is reachable."""
        return await self.profile_service.check_connection()

    async def handle_remote_change(self, table: str, user_id: UUID) -> None:
        """Reload cached data after a realtime change notification."""
        if table == MISSIONS_TABLE:
            await self.mission_service.reload(user_id)
        elif table == COMPLETIONS_TABLE:
            await self.completion_service.reload(user_id)
        else:
            raise ValueError(f"Unsupported table: {table}")

    async def sync_pending_operations(self) -> SyncResult:
        """Replay mutations recorded while offline."""
        return await self.pending_sync.sync()

    async def teardown(self, *, drain: bool = True) -> None:
        """Close the queue and clear the cache."""
        await self.queue.close(drain=drain)
        self.cache.clear()
        _logger.info("Data access torn down")


def _round_percent(completed: int, total: int) -> int:
    """Return ``completed / total`` as a percentage rounded half up."""
    if total == 0:
        return 0
    return (200 * completed + total) // (2 * total)
