"""Pydantic models for API request bodies."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from habit_tracker.domain.missions import Category, Frequency
from habit_tracker.domain.pending import PendingOperationType


class AuthUserPayload(BaseModel):
    """Authenticated user handed over by the auth provider."""

    id: UUID
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


class MissionCreatePayload(BaseModel):
    """Fields for a new mission."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    category: Category = Category.PHYSICAL
    frequency: Frequency = Frequency.DAILY
    sticker: str = "⭐"
    is_custom: bool = True


class PendingOperationPayload(BaseModel):
    """Mutation recorded by a client while offline."""

    operation_type: PendingOperationType
    payload: dict[str, object] = Field(default_factory=dict)
