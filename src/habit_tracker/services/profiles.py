"""Profile lifecycle service."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from habit_tracker.domain.models import AuthUser, Profile
from habit_tracker.services.cache import Cache, CacheKey

PROFILE_ENTITY = "profile"
DEFAULT_NICKNAME = "User"

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return the profile for a user, if present."""

    def create_profile(
        self, user_id: UUID, nickname: str, avatar_url: str | None
    ) -> Profile:
        """Create and return a new profile."""

    def ping(self) -> None:
        """Issue a minimal read, raising when the store is unreachable."""


def profile_key(user_id: UUID) -> CacheKey:
    """Return the cache key for a user's profile."""
    return CacheKey(PROFILE_ENTITY, str(user_id))


@dataclass
class ProfileService:
    """Application service for profile lookups."""

    repository: ProfileRepository
    cache: Cache
    ttl_seconds: float | None = None

    async def ensure_profile(self, user: AuthUser) -> Profile:
        """Return the user's profile, creating it on first sign-in."""
        key = profile_key(user.id)
        cached = self.cache.get(key)
        if isinstance(cached, Profile):
            return cached

        profile = await asyncio.to_thread(self.repository.get_profile, user.id)
        if profile is None:
            profile = await asyncio.to_thread(
                self.repository.create_profile,
                user.id,
                _default_nickname(user),
                user.avatar_url,
            )
            _logger.info("Created profile for user %s", user.id)
        self.cache.set(key, profile, ttl_seconds=self.ttl_seconds)
        return profile

    async def check_connection(self) -> bool:
        """Return True when the remote store answers a trivial query."""
        try:
            await asyncio.to_thread(self.repository.ping)
        except Exception as exc:
            _logger.warning("Connection check failed: %s", exc)
            return False
        return True


def _default_nickname(user: AuthUser) -> str:
    if user.full_name:
        return user.full_name
    if user.email:
        local_part = user.email.split("@")[0]
        if local_part:
            return local_part
    return DEFAULT_NICKNAME
