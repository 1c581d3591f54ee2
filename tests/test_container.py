"""Tests for container wiring."""

import asyncio
import importlib
import sys

import pytest
from pydantic import ValidationError

from habit_tracker.config import Settings
from habit_tracker.containers import build_container
from habit_tracker.services.batch_queue import QueueState


def test_build_container_creates_data_access(settings) -> None:
    container = build_container(settings)

    data_access = container.data_access
    assert data_access.cache.default_ttl_seconds == settings.cache_ttl_seconds
    assert data_access.queue.batch_size == settings.batch_size
    assert data_access.completion_service.ttl_seconds == (
        settings.completions_ttl_seconds
    )

    asyncio.run(container.close_resources())
    assert data_access.queue.closed
    assert data_access.queue.state is QueueState.IDLE


def test_asgi_app_builds_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "header.payload.signature")
    monkeypatch.setenv("ADMIN_TOKEN", "admin-token")
    monkeypatch.delitem(sys.modules, "habit_tracker.api.asgi", raising=False)

    module = importlib.import_module("habit_tracker.api.asgi")

    assert module.app.state.container.settings.admin_token == "admin-token"


def test_settings_reject_non_positive_queue_bound() -> None:
    with pytest.raises(ValidationError):
        Settings(
            supabase_url="https://example.supabase.co",
            supabase_key="header.payload.signature",
            admin_token="admin-token",
            batch_max_pending=0,
        )

    unbounded = Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="header.payload.signature",
        admin_token="admin-token",
        batch_max_pending=None,
    )
    assert unbounded.batch_max_pending is None
