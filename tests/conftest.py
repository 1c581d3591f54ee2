"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from habit_tracker.config import Settings
from habit_tracker.containers import AppContainer
from habit_tracker.domain.missions import Mission, MissionCompletion, NewMission
from habit_tracker.domain.models import Profile
from habit_tracker.services.completions import CompletionRepository
from habit_tracker.services.data_access import DataAccess
from habit_tracker.services.missions import MissionRepository
from habit_tracker.services.profiles import ProfileRepository
from habit_tracker.services.storage import InMemoryKeyValueStore


@dataclass
class FakeClock:
    """Manually advanced UTC clock."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[UUID, Profile] = field(default_factory=dict)
    get_calls: int = 0
    reachable: bool = True

    def get_profile(self, user_id: UUID) -> Profile | None:
        self.get_calls += 1
        return self.profiles.get(user_id)

    def create_profile(
        self, user_id: UUID, nickname: str, avatar_url: str | None
    ) -> Profile:
        profile = Profile(
            id=user_id,
            nickname=nickname,
            avatar_url=avatar_url,
            created_at=datetime.now(tz=UTC),
        )
        self.profiles[user_id] = profile
        return profile

    def ping(self) -> None:
        if not self.reachable:
            raise ConnectionError("store unreachable")


@dataclass
class InMemoryMissionRepository(MissionRepository):
    """In-memory mission repository for tests."""

    missions: dict[UUID, Mission] = field(default_factory=dict)
    list_calls: int = 0
    deleted: list[UUID] = field(default_factory=list)
    create_error: Exception | None = None
    delete_errors: dict[UUID, Exception] = field(default_factory=dict)

    def list_missions(self, user_id: UUID) -> list[Mission]:
        self.list_calls += 1
        owned = [m for m in self.missions.values() if m.user_id == user_id]
        return sorted(owned, key=lambda mission: mission.created_at)

    def create_mission(self, mission: NewMission) -> Mission:
        if self.create_error is not None:
            raise self.create_error
        stored = Mission(
            id=uuid4(),
            user_id=mission.user_id,
            title=mission.title,
            category=mission.category,
            frequency=mission.frequency,
            sticker=mission.sticker,
            is_custom=mission.is_custom,
            created_at=datetime.now(tz=UTC),
        )
        self.missions[stored.id] = stored
        return stored

    def delete_mission(self, mission_id: UUID) -> None:
        if mission_id in self.delete_errors:
            raise self.delete_errors[mission_id]
        self.missions.pop(mission_id, None)
        self.deleted.append(mission_id)


@dataclass
class InMemoryCompletionRepository(CompletionRepository):
    """In-memory completion repository for tests."""

    completions: list[MissionCompletion] = field(default_factory=list)
    clock: Callable[[], datetime] = _utcnow
    list_calls: int = 0
    create_error: Exception | None = None

    def list_completions(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MissionCompletion]:
        self.list_calls += 1
        return [
            c
            for c in self.completions
            if c.user_id == user_id and start <= c.completed_at < end
        ]

    def create_completion(self, user_id: UUID, mission_id: UUID) -> MissionCompletion:
        if self.create_error is not None:
            raise self.create_error
        completion = MissionCompletion(
            id=uuid4(),
            user_id=user_id,
            mission_id=mission_id,
            completed_at=self.clock(),
        )
        self.completions.append(completion)
        return completion

    def delete_completions(
        self, user_id: UUID, mission_id: UUID, start: datetime, end: datetime
    ) -> None:
        self.completions = [
            c
            for c in self.completions
            if not (
                c.user_id == user_id
                and c.mission_id == mission_id
                and start <= c.completed_at < end
            )
        ]


def build_data_access(
    profile_repository: InMemoryProfileRepository | None = None,
    mission_repository: InMemoryMissionRepository | None = None,
    completion_repository: InMemoryCompletionRepository | None = None,
    store: InMemoryKeyValueStore | None = None,
) -> DataAccess:
    """Create a facade over in-memory repositories with no batch pause."""
    return DataAccess.create(
        profile_repository=profile_repository or InMemoryProfileRepository(),
        mission_repository=mission_repository or InMemoryMissionRepository(),
        completion_repository=completion_repository
        or InMemoryCompletionRepository(),
        store=store or InMemoryKeyValueStore(),
        batch_pause_seconds=0,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="header.payload.signature",
        admin_token="admin-token",
    )


@pytest.fixture
def data_access() -> DataAccess:
    return build_data_access()


@pytest.fixture
def container(settings: Settings, data_access: DataAccess) -> AppContainer:
    async def close_resources() -> None:
        await data_access.teardown()

    return AppContainer(
        settings=settings,
        data_access=data_access,
        close_resources=close_resources,
    )
