"""Supabase-backed mission repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from habit_tracker.domain.missions import Category, Frequency, Mission, NewMission
from habit_tracker.services.missions import MissionRepository


@dataclass
class SupabaseMissionRepository(MissionRepository):
    """Supabase implementation for mission persistence."""

    client: Client

    def list_missions(self, user_id: UUID) -> list[Mission]:
        """Return a user's missions, oldest first."""
        response = (
            self.client.table("user_missions")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_mission(row) for row in response.data or []]

    def create_mission(self, mission: NewMission) -> Mission:
        """Insert a mission and return the stored row."""
        response = (
            self.client.table("user_missions").insert(mission.to_payload()).execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create mission in Supabase")
        return _parse_mission(response.data[0])

    def delete_mission(self, mission_id: UUID) -> None:
        """Delete a mission by id."""
        self.client.table("user_missions").delete().eq(
            "id", str(mission_id)
        ).execute()


def _parse_mission(row: dict[str, object]) -> Mission:
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    return Mission(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        title=str(row.get("title", "")),
        category=Category(row.get("category")),
        frequency=Frequency(row.get("frequency")),
        sticker=str(row.get("sticker", "")),
        is_custom=bool(row.get("is_custom", False)),
        created_at=created_at,
    )
