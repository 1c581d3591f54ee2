"""Supabase-backed profile repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from habit_tracker.domain.models import Profile
from habit_tracker.services.profiles import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for profile persistence."""

    client: Client

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return the profile for a user, if present."""
        response = (
            self.client.table("profiles")
            .select("*")
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def create_profile(
        self, user_id: UUID, nickname: str, avatar_url: str | None
    ) -> Profile:
        """Create a profile row and return it."""
        response = (
            self.client.table("profiles")
            .insert(
                {
                    "id": str(user_id),
                    "nickname": nickname,
                    "avatar_url": avatar_url,
                    "created_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create profile in Supabase")
        return _parse_profile(response.data[0])

    def ping(self) -> None:
        """Run the cheapest possible query against the profiles table."""
        self.client.table("profiles").select("id").limit(1).execute()


def _parse_profile(row: dict[str, object]) -> Profile:
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    return Profile(
        id=UUID(str(row["id"])),
        nickname=str(row.get("nickname", "")),
        avatar_url=row.get("avatar_url"),
        created_at=created_at,
    )
