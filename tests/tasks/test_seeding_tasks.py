"""Tests for the Celery seeding tasks and their error reports."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import Mock

import pytest

from hotel_curator.curation import runs as seed_runs
from hotel_curator.curation.runs import SeedRunTracker
from hotel_curator.exceptions import (
    AuthenticationError,
    CatalogEmptyError,
    CatalogParseError,
    ConfigurationError,
    CuratorError,
    NotFoundError,
    SeedTimeoutError,
    ServerError,
    VendorTimeoutError,
)
from hotel_curator.schemas.curation import SeedRunView
from hotel_curator.tasks import seeding
from hotel_curator.tasks.error_handling import build_error_report
from hotel_curator.utils.config import get_settings


def create_run(mode: str = "fast_stream") -> SeedRunView:
    return asyncio.run(SeedRunTracker().create(mode, {}))


def test_run_seed_reports_missing_run() -> None:
    assert seeding.run_seed("no-such-run") == {"run_id": "no-such-run", "status": "missing"}


def test_run_seed_records_configuration_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    run = create_run()
    monkeypatch.delenv("CURATOR_VENDOR__PASSWORD")
    get_settings(reload=True)

    result = seeding.run_seed(run.id)

    assert result["status"] == "error"
    assert result["error"]["code"] == "config_error"
    assert result["error"]["classification"] == "configuration"
    assert "CURATOR_VENDOR__PASSWORD" in result["error"]["message"]

    stored = asyncio.run(SeedRunTracker().get(run.id))
    assert stored is not None
    assert stored.status == "error"
    assert stored.last_error is not None
    assert stored.last_error["code"] == "config_error"


def test_run_seed_summarises_the_finished_run(monkeypatch: pytest.MonkeyPatch) -> None:
    run = create_run()

    async def fake_execute(run_id: str, **_: Any) -> SeedRunView:
        return run.model_copy(update={"status": "done", "seeded_count": 9, "aborted_early": True})

    monkeypatch.setattr(seeding, "execute_seed_run", fake_execute)

    assert seeding.run_seed(run.id) == {
        "run_id": run.id,
        "status": "done",
        "seeded_count": 9,
        "aborted_early": True,
        "last_error": None,
    }


@pytest.mark.parametrize(
    ("exc", "classification", "retryable"),
    [
        (ConfigurationError("missing"), "configuration", False),
        (AuthenticationError("denied", status=401), "authentication", False),
        (VendorTimeoutError("slow"), "upstream_unavailable", True),
        (ServerError("down", status=503), "upstream_unavailable", True),
        (NotFoundError("gone", status=404), "upstream", False),
        (CatalogParseError("bad json"), "catalog_format", False),
        (CatalogEmptyError("empty"), "catalog_empty", True),
        (SeedTimeoutError("late"), "timeout", True),
        (CuratorError("other"), "application", False),
        (RuntimeError("boom"), "unexpected", False),
    ],
)
def test_build_error_report_classification(
    exc: Exception, classification: str, retryable: bool
) -> None:
    report = build_error_report(exc, task="process_seed_run", run_id="run-1")

    assert report.classification == classification
    assert report.retryable is retryable
    assert report.to_dict()["run_id"] == "run-1"


def test_build_error_report_carries_vendor_details() -> None:
    exc = ServerError("down", status=503, upstream_ms=1200)

    payload = build_error_report(exc, task="warm_vendor_cache", extra_details={"attempt": 2}).to_dict()

    assert payload["code"] == "server_error"
    assert payload["error_type"] == "ServerError"
    assert payload["details"]["upstream_status"] == 503
    assert payload["details"]["upstream_ms"] == 1200
    assert payload["details"]["attempt"] == 2


def test_run_scheduled_returns_job_result() -> None:
    async def job() -> dict[str, int]:
        return {"warmed": 3}

    assert seeding._run_scheduled("warm_vendor_cache", job) == {
        "status": "ok",
        "result": {"warmed": 3},
    }


def test_run_scheduled_reports_curator_errors() -> None:
    async def job() -> None:
        raise ServerError("vendor down", status=502)

    result = seeding._run_scheduled("warm_vendor_cache", job)

    assert result["status"] == "error"
    assert result["error"]["task"] == "warm_vendor_cache"
    assert result["error"]["retryable"] is True


def test_schedule_curated_seed_dispatches_buffered_run(monkeypatch: pytest.MonkeyPatch) -> None:
    dispatch = Mock()
    monkeypatch.setattr(seed_runs, "_dispatch_with_celery", dispatch)

    result = seeding.schedule_curated_seed()

    assert result["status"] == "ok"
    outcome = result["result"]
    assert outcome["triggered"] is True
    assert outcome["reason"] == "schedule"
    dispatch.assert_called_once_with(outcome["run_id"])

    run = asyncio.run(SeedRunTracker().get(outcome["run_id"]))
    assert run is not None
    assert run.mode == "from_hotellist"
