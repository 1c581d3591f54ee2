"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from habit_tracker.adapters.supabase_completion_repository import (
    SupabaseCompletionRepository,
)
from habit_tracker.adapters.supabase_mission_repository import (
    SupabaseMissionRepository,
)
from habit_tracker.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from habit_tracker.config import Settings
from habit_tracker.services.data_access import DataAccess
from habit_tracker.services.storage import InMemoryKeyValueStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    data_access: DataAccess
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_key
    )
    data_access = DataAccess.create(
        profile_repository=SupabaseProfileRepository(supabase_client),
        mission_repository=SupabaseMissionRepository(supabase_client),
        completion_repository=SupabaseCompletionRepository(supabase_client),
        store=InMemoryKeyValueStore(),
        cache_ttl_seconds=resolved_settings.cache_ttl_seconds,
        completions_ttl_seconds=resolved_settings.completions_ttl_seconds,
        batch_size=resolved_settings.batch_size,
        batch_pause_seconds=resolved_settings.batch_pause_seconds,
        batch_max_pending=resolved_settings.batch_max_pending,
    )

    async def close_resources() -> None:
        await data_access.teardown()

    return AppContainer(
        settings=resolved_settings,
        data_access=data_access,
        close_resources=close_resources,
    )
