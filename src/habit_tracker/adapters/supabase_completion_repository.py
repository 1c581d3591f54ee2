"""Supabase-backed mission completion repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from habit_tracker.domain.missions import MissionCompletion
from habit_tracker.services.completions import CompletionRepository


@dataclass
class SupabaseCompletionRepository(CompletionRepository):
    """Supabase implementation for completion persistence."""

    client: Client

    def list_completions(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MissionCompletion]:
        """Return completions in the time range."""
        response = (
            self.client.table("mission_completions")
            .select("*")
            .eq("user_id", str(user_id))
            .gte("completed_at", start.isoformat())
            .lt("completed_at", end.isoformat())
            .execute()
        )
        return [_parse_completion(row) for row in response.data or []]

    def create_completion(self, user_id: UUID, mission_id: UUID) -> MissionCompletion:
        """Insert a completion stamped with the current time."""
        response = (
            self.client.table("mission_completions")
            .insert(
                {
                    "user_id": str(user_id),
                    "mission_id": str(mission_id),
                    "completed_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create completion in Supabase")
        return _parse_completion(response.data[0])

    def delete_completions(
        self, user_id: UUID, mission_id: UUID, start: datetime, end: datetime
    ) -> None:
        """Delete a mission's completions within the time range."""
        (
            self.client.table("mission_completions")
            .delete()
            .eq("user_id", str(user_id))
            .eq("mission_id", str(mission_id))
            .gte("completed_at", start.isoformat())
            .lt("completed_at", end.isoformat())
            .execute()
        )


def _parse_completion(row: dict[str, object]) -> MissionCompletion:
    completed_raw = row.get("completed_at")
    completed_at = (
        datetime.fromisoformat(completed_raw)
        if isinstance(completed_raw, str) and completed_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    return MissionCompletion(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        mission_id=UUID(str(row["mission_id"])),
        completed_at=completed_at,
    )
