"""Domain models for users and profiles."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class AuthUser:
    """Identity handed over by the auth provider."""

    id: UUID
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class Profile:
    """Represents a user profile stored in the database."""

    id: UUID
    nickname: str
    avatar_url: str | None
    created_at: datetime
