"""Mission read-through and mutation service."""

import asyncio
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from habit_tracker.domain.missions import Category, Mission, NewMission
from habit_tracker.services.batch_queue import BatchQueue, PendingOperation
from habit_tracker.services.cache import Cache, CacheKey
from habit_tracker.services.completions import COMPLETIONS_ENTITY

MISSIONS_ENTITY = "missions"


class MissionRepository(Protocol):
    """Persistence interface for missions."""

    def list_missions(self, user_id: UUID) -> list[Mission]:
        """Return a user's missions, oldest first."""

    def create_mission(self, mission: NewMission) -> Mission:
        """Insert a mission and return the stored row."""

    def delete_mission(self, mission_id: UUID) -> None:
        """Delete a mission by id."""


def missions_key(user_id: UUID) -> CacheKey:
    """Return the cache key for a user's mission list."""
    return CacheKey(MISSIONS_ENTITY, str(user_id))


@dataclass
class MissionService:
    """Service for reading and changing a user's missions."""

    repository: MissionRepository
    cache: Cache
    queue: BatchQueue
    ttl_seconds: float | None = None

    async def get_user_missions(
        self, user_id: UUID, use_cache: bool = True
    ) -> list[Mission]:
        """Return the user's missions, consulting the cache first."""
        key = missions_key(user_id)
        if use_cache:
            cached = self.cache.get(key)
            if isinstance(cached, list):
                return list(cached)

        missions = await asyncio.to_thread(self.repository.list_missions, user_id)
        self.cache.set(key, list(missions), ttl_seconds=self.ttl_seconds)
        return list(missions)

    async def create_mission(self, new_mission: NewMission) -> Mission:
        """Insert a mission and append it to the cached list, if any."""
        key = missions_key(new_mission.user_id)
        try:
            mission = await asyncio.to_thread(
                self.repository.create_mission, new_mission
            )
        except Exception:
            self.cache.delete(key)
            raise

        cached = self.cache.get(key)
        if isinstance(cached, list):
            self.cache.set(key, [*cached, mission], ttl_seconds=self.ttl_seconds)
        return mission

    def enqueue_delete(self, mission_id: UUID) -> PendingOperation:
        """Queue a mission deletion and return its pending record."""

        async def _delete() -> None:
            await asyncio.to_thread(self.repository.delete_mission, mission_id)
            # The owner is unknown here, so drop both entity classes.
            self.cache.invalidate(entity=MISSIONS_ENTITY)
            self.cache.invalidate(entity=COMPLETIONS_ENTITY)

        return self.queue.add(_delete)

    async def delete_mission(self, mission_id: UUID) -> None:
        """Delete a mission through the batch queue and wait for it."""
        await self.enqueue_delete(mission_id).wait()

    async def missions_by_category(
        self, user_id: UUID
    ) -> list[tuple[Category, list[Mission]]]:
        """Group missions by category, skipping empty categories."""
        missions = await self.get_user_missions(user_id)
        groups = []
        for category in Category:
            members = [mission for mission in missions if mission.category is category]
            if members:
                groups.append((category, members))
        return groups

    async def reload(self, user_id: UUID) -> list[Mission]:
        """Refresh the cached mission list from the remote store."""
        return await self.get_user_missions(user_id, use_cache=False)
