"""In-memory TTL cache with namespace-aware invalidation."""

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

_logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheKey:
    """Namespaced cache key rendered as ``entity:owner[:subkey]``."""

    entity: str
    owner_id: str
    subkey: str | None = None

    def __str__(self) -> str:
        parts = [self.entity, self.owner_id]
        if self.subkey is not None:
            parts.append(self.subkey)
        return ":".join(parts)

    def matches(
        self,
        entity: str | None = None,
        owner_id: str | None = None,
        subkey: str | None = None,
    ) -> bool:
        """Return True when every given field equals this key's field."""
        if entity is not None and entity != self.entity:
            return False
        if owner_id is not None and owner_id != self.owner_id:
            return False
        return subkey is None or subkey == self.subkey


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: Hashable) -> object | None:
        """Return a cached value if present and not expired."""

    def set(
        self, key: Hashable, value: object, ttl_seconds: float | None = None
    ) -> None:
        """Store a non-``None`` value with a TTL in seconds."""

    def delete(self, key: Hashable) -> None:
        """Remove a cached value if present."""

    def clear(self) -> None:
        """Remove every cached value."""

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every entry whose rendered key contains ``pattern``."""

    def invalidate(
        self,
        entity: str | None = None,
        owner_id: str | None = None,
        subkey: str | None = None,
    ) -> int:
        """Remove every namespaced entry matching the given fields."""


@dataclass
class _CacheEntry:
    value: object
    stored_at: datetime
    ttl: timedelta

    def is_fresh(self, now: datetime) -> bool:
        return now - self.stored_at <= self.ttl


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryCache(Cache):
    """Process-local cache with lazy expiry.

    Entries are only checked for staleness when read; nothing sweeps the map
    in the background. Keys may be plain strings or :class:`CacheKey`
    instances. ``invalidate_pattern`` works on the rendered form of both,
    while ``invalidate`` only considers :class:`CacheKey` entries and
    compares whole fields.
    """

    default_ttl_seconds: float = DEFAULT_TTL_SECONDS
    clock: Callable[[], datetime] = _utcnow
    _entries: dict[Hashable, _CacheEntry] = field(default_factory=dict, repr=False)

    def get(self, key: Hashable) -> object | None:
        """Return a cached value if it hasn't expired.

        ``None`` means a miss; ``None`` itself is never stored.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self.clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(
        self, key: Hashable, value: object, ttl_seconds: float | None = None
    ) -> None:
        """Store a cached value, resetting its timer."""
        if value is None:
            raise ValueError("None values are not cacheable")
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = _CacheEntry(
            value=value, stored_at=self.clock(), ttl=timedelta(seconds=ttl)
        )

    def delete(self, key: Hashable) -> None:
        """Remove a cached value if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove every cached value regardless of TTL."""
        count = len(self._entries)
        self._entries.clear()
        _logger.debug("Cache cleared: removed=%s", count)

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every entry whose rendered key contains ``pattern``."""
        return self._remove_where(lambda key: pattern in str(key))

    def invalidate(
        self,
        entity: str | None = None,
        owner_id: str | None = None,
        subkey: str | None = None,
    ) -> int:
        """Remove every :class:`CacheKey` entry matching the given fields."""
        return self._remove_where(
            lambda key: isinstance(key, CacheKey)
            and key.matches(entity=entity, owner_id=owner_id, subkey=subkey)
        )

    def stats(self) -> dict[str, object]:
        """Return a summary of stored entries without evicting any."""
        now = self.clock()
        fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now))
        return {
            "entries": len(self._entries),
            "fresh": fresh,
            "stale": len(self._entries) - fresh,
            "default_ttl_seconds": self.default_ttl_seconds,
        }

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _remove_where(self, predicate: Callable[[Hashable], bool]) -> int:
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            _logger.debug("Cache invalidated: removed=%s", len(doomed))
        return len(doomed)
