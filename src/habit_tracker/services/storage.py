"""String-keyed local storage used for offline bookkeeping."""

from dataclasses import dataclass, field
from typing import Protocol


class KeyValueStore(Protocol):
    """Interface for a small string-keyed store."""

    def get(self, key: str) -> str | None:
        """Return the stored string, if any."""

    def set(self, key: str, value: str) -> None:
        """Store a string under ``key``."""

    def remove(self, key: str) -> None:
        """Remove ``key`` if present."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; contents are lost on exit."""

    items: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.items.get(key)

    def set(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove(self, key: str) -> None:
        self.items.pop(key, None)
