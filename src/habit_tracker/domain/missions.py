"""Domain models for missions and completions."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class Category(str, Enum):
    """Mission categories, in display order."""

    PHYSICAL = "physical"
    EMOTIONAL = "emotional"
    SOCIAL = "social"
    SPIRITUAL = "spiritual"


class Frequency(str, Enum):
    """How often a mission is meant to be performed."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class NewMission:
    """Mission fields supplied by the user before it is stored."""

    user_id: UUID
    title: str
    category: Category
    frequency: Frequency
    sticker: str = "⭐"
    is_custom: bool = True

    def to_payload(self) -> dict[str, object]:
        """Return the row payload for an insert."""
        return {
            "user_id": str(self.user_id),
            "title": self.title,
            "category": self.category.value,
            "frequency": self.frequency.value,
            "sticker": self.sticker,
            "is_custom": self.is_custom,
        }


@dataclass(frozen=True)
class Mission:
    """A stored recurring mission."""

    id: UUID
    user_id: UUID
    title: str
    category: Category
    frequency: Frequency
    sticker: str
    is_custom: bool
    created_at: datetime


@dataclass(frozen=True)
class MissionCompletion:
    """A timestamped record that a mission was performed."""

    id: UUID
    user_id: UUID
    mission_id: UUID
    completed_at: datetime


@dataclass(frozen=True)
class DailyProgress:
    """Share of a user's missions completed on a given day."""

    day: date
    completed: int
    total: int
    percent: int
