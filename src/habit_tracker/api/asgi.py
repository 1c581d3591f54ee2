"""ASGI entrypoint for the habit tracker API."""

from habit_tracker.api.app import create_app
from habit_tracker.containers import build_container

app = create_app(build_container())
