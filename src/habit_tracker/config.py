"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_key: str
    admin_token: str
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    completions_ttl_seconds: float = Field(default=60.0, gt=0)
    batch_size: int = Field(default=10, ge=1)
    batch_pause_seconds: float = Field(default=0.01, ge=0)
    batch_max_pending: int | None = Field(default=1000, ge=1)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
