"""Pytest configuration - no path manipulation, rely on proper package installation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from hotel_curator.models.base import reset_engine
from hotel_curator.utils.clock import FrozenClock
from hotel_curator.utils.config import get_settings

VENDOR_BASE_URL = "https://vendor.test"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Give every test its own SQLite database, API key and vendor credentials."""

    db_path = tmp_path_factory.mktemp("sqlite-db") / "curator.sqlite"
    monkeypatch.setenv("CURATOR_DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("CURATOR_API_KEYS", '["test-key"]')
    monkeypatch.setenv("CURATOR_VENDOR__BASE_URL", VENDOR_BASE_URL)
    monkeypatch.setenv("CURATOR_VENDOR__USERNAME", "curator")
    monkeypatch.setenv("CURATOR_VENDOR__PASSWORD", "s3cret")
    monkeypatch.setenv("CURATOR_VENDOR__RETRY_BASE_DELAY_SECONDS", "0")
    monkeypatch.setenv("CURATOR_VENDOR__RETRY_JITTER_SECONDS", "0")

    reset_engine()
    get_settings(reload=True)
    yield
    reset_engine()
    get_settings(reload=True)


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at a fixed UTC instant."""

    return FrozenClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))
