"""Tests for the data-access facade."""

import asyncio
from uuid import UUID, uuid4

import pytest

from habit_tracker.domain.missions import Category, Frequency, NewMission
from habit_tracker.services.batch_queue import QueueClosedError
from habit_tracker.services.cache import CacheKey
from habit_tracker.services.completions import completions_key
from habit_tracker.services.data_access import _round_percent
from habit_tracker.services.missions import missions_key
from tests.conftest import (
    InMemoryCompletionRepository,
    InMemoryMissionRepository,
    build_data_access,
)


def _mission(user_id: UUID, title: str) -> NewMission:
    return NewMission(
        user_id=user_id,
        title=title,
        category=Category.PHYSICAL,
        frequency=Frequency.DAILY,
    )


def test_daily_progress_counts_distinct_completed_missions() -> None:
    missions = InMemoryMissionRepository()
    completions = InMemoryCompletionRepository()
    data_access = build_data_access(
        mission_repository=missions, completion_repository=completions
    )
    user_id = uuid4()
    walk = missions.create_mission(_mission(user_id, "Walk"))
    missions.create_mission(_mission(user_id, "Stretch"))
    missions.create_mission(_mission(user_id, "Meditate"))
    completions.create_completion(user_id, walk.id)
    completions.create_completion(user_id, walk.id)
    completions.create_completion(user_id, uuid4())

    progress = asyncio.run(data_access.daily_progress(user_id))

    assert progress.completed == 1
    assert progress.total == 3
    assert progress.percent == 33


def test_daily_progress_without_missions_is_zero() -> None:
    data_access = build_data_access()

    progress = asyncio.run(data_access.daily_progress(uuid4()))

    assert progress.total == 0
    assert progress.percent == 0


def test_round_percent_rounds_half_up() -> None:
    assert _round_percent(1, 8) == 13
    assert _round_percent(2, 3) == 67
    assert _round_percent(3, 3) == 100


def test_preload_populates_cache() -> None:
    data_access = build_data_access()
    user_id = uuid4()

    asyncio.run(data_access.preload_user_data(user_id))

    assert missions_key(user_id) in data_access.cache
    today = data_access.completion_service.today()
    assert completions_key(user_id, today) in data_access.cache


def test_invalidate_user_keeps_other_users() -> None:
    data_access = build_data_access()
    user_id = uuid4()
    other_id = uuid4()
    asyncio.run(data_access.preload_user_data(user_id))
    asyncio.run(data_access.preload_user_data(other_id))
    data_access.cache.set(CacheKey("profile", str(user_id)), "profile")

    removed = data_access.invalidate_user(user_id)

    assert removed == 3
    assert missions_key(user_id) not in data_access.cache
    assert missions_key(other_id) in data_access.cache


def test_clear_cache_removes_everything() -> None:
    data_access = build_data_access()
    asyncio.run(data_access.preload_user_data(uuid4()))

    data_access.clear_cache()

    assert len(data_access.cache) == 0


def test_handle_remote_change_reloads_matching_table() -> None:
    missions = InMemoryMissionRepository()
    completions = InMemoryCompletionRepository()
    data_access = build_data_access(
        mission_repository=missions, completion_repository=completions
    )
    user_id = uuid4()
    asyncio.run(data_access.preload_user_data(user_id))
    mission = missions.create_mission(_mission(user_id, "Walk"))
    completions.create_completion(user_id, mission.id)

    asyncio.run(data_access.handle_remote_change("user_missions", user_id))
    asyncio.run(data_access.handle_remote_change("mission_completions", user_id))

    assert data_access.cache.get(missions_key(user_id)) == [mission]
    today = data_access.completion_service.today()
    assert len(data_access.cache.get(completions_key(user_id, today))) == 1


def test_handle_remote_change_rejects_unknown_table() -> None:
    data_access = build_data_access()

    with pytest.raises(ValueError, match="Unsupported table"):
        asyncio.run(data_access.handle_remote_change("profiles", uuid4()))


def test_check_connection_delegates_to_profiles() -> None:
    data_access = build_data_access()

    assert asyncio.run(data_access.check_connection()) is True


def test_teardown_clears_cache_and_closes_queue() -> None:
    data_access = build_data_access()
    user_id = uuid4()

    async def scenario() -> None:
        await data_access.preload_user_data(user_id)
        await data_access.teardown()
        with pytest.raises(QueueClosedError):
            await data_access.mission_service.delete_mission(uuid4())

    asyncio.run(scenario())

    assert len(data_access.cache) == 0
    assert data_access.queue.closed
