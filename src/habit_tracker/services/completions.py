"""Daily completion tracking service."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from uuid import UUID

from habit_tracker.domain.missions import MissionCompletion
from habit_tracker.services.batch_queue import BatchQueue, PendingOperation
from habit_tracker.services.cache import Cache, CacheKey

COMPLETIONS_ENTITY = "completions"
COMPLETIONS_TTL_SECONDS = 60.0


class CompletionRepository(Protocol):
    """Persistence interface for mission completions."""

    def list_completions(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MissionCompletion]:
        """Return completions with ``start <= completed_at < end``."""

    def create_completion(self, user_id: UUID, mission_id: UUID) -> MissionCompletion:
        """Insert a completion stamped with the current time."""

    def delete_completions(
        self, user_id: UUID, mission_id: UUID, start: datetime, end: datetime
    ) -> None:
        """Delete a mission's completions within the time range."""


def completions_key(user_id: UUID, day: date) -> CacheKey:
    """Return the cache key for a user's completions on a day."""
    return CacheKey(COMPLETIONS_ENTITY, str(user_id), day.isoformat())


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the UTC start of ``day`` and of the following day."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + timedelta(days=1)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CompletionService:
    """Service for marking and reading today's mission completions."""

    repository: CompletionRepository
    cache: Cache
    queue: BatchQueue
    ttl_seconds: float = COMPLETIONS_TTL_SECONDS
    clock: Callable[[], datetime] = _utcnow

    def today(self) -> date:
        """Return the current UTC date."""
        return self.clock().astimezone(UTC).date()

    async def get_today_completions(
        self, user_id: UUID, use_cache: bool = True
    ) -> list[MissionCompletion]:
        """Return today's completions, consulting the cache first."""
        day = self.today()
        key = completions_key(user_id, day)
        if use_cache:
            cached = self.cache.get(key)
            if isinstance(cached, list):
                return list(cached)

        start, end = day_bounds(day)
        completions = await asyncio.to_thread(
            self.repository.list_completions, user_id, start, end
        )
        self.cache.set(key, list(completions), ttl_seconds=self.ttl_seconds)
        return list(completions)

    async def complete_mission(
        self, user_id: UUID, mission_id: UUID
    ) -> MissionCompletion:
        """Record a completion and append it to today's cached list, if any."""
        key = completions_key(user_id, self.today())
        try:
            completion = await asyncio.to_thread(
                self.repository.create_completion, user_id, mission_id
            )
        except Exception:
            self.cache.delete(key)
            raise

        cached = self.cache.get(key)
        if isinstance(cached, list):
            self.cache.set(key, [*cached, completion], ttl_seconds=self.ttl_seconds)
        return completion

    def enqueue_uncomplete(self, user_id: UUID, mission_id: UUID) -> PendingOperation:
        """Queue removal of today's completions for a mission."""
        day = self.today()
        start, end = day_bounds(day)

        async def _uncomplete() -> None:
            await asyncio.to_thread(
                self.repository.delete_completions, user_id, mission_id, start, end
            )
            self.cache.delete(completions_key(user_id, day))

        return self.queue.add(_uncomplete)

    async def uncomplete_mission(self, user_id: UUID, mission_id: UUID) -> None:
        """Undo today's completion through the batch queue and wait for it."""
        await self.enqueue_uncomplete(user_id, mission_id).wait()

    async def toggle_completion(self, user_id: UUID, mission_id: UUID) -> bool:
        """Flip today's completion state and return the new state."""
        completions = await self.get_today_completions(user_id)
        if any(completion.mission_id == mission_id for completion in completions):
            await self.uncomplete_mission(user_id, mission_id)
            return False
        await self.complete_mission(user_id, mission_id)
        return True

    async def reload(self, user_id: UUID) -> list[MissionCompletion]:
        """Refresh today's cached completions from the remote store."""
        return await self.get_today_completions(user_id, use_cache=False)
