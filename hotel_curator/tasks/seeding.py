"""Celery tasks for curated seeding and vendor cache warming."""

from __future__ import annotations

import asyncio
from typing import Any

from ..cache.store import CacheStore
from ..curation.runs import SeedRunTracker, SeedTrigger, execute_seed_run
from ..curation.store import CuratedHotelStore
from ..exceptions import ConfigurationError, CuratorError
from ..utils.config import ensure_runtime_configuration, get_settings
from ..utils.logging import setup_logger
from ..vendor.gateway import VendorGateway
from ..vendor.static_data import StaticDataService, warm_static_cache
from .celery_app import celery_app
from .error_handling import build_error_report

logger = setup_logger(__name__, context={"component": "CeleryTasks"})


def run_seed(run_id: str) -> dict[str, Any]:
    """Execute one seed run synchronously for Celery workers."""

    try:
        settings = ensure_runtime_configuration(get_settings())
    except ConfigurationError as exc:
        report = build_error_report(exc, task="process_seed_run", run_id=run_id)
        logger.error(
            "Seed run cannot start: %s", exc, extra={"run_id": run_id, "status": report.code}
        )
        asyncio.run(SeedRunTracker().fail(run_id, exc.as_dict()))
        return {"run_id": run_id, "status": "error", "error": report.to_dict()}

    view = asyncio.run(execute_seed_run(run_id, settings=settings))
    if view is None:
        return {"run_id": run_id, "status": "missing"}
    return {
        "run_id": run_id,
        "status": view.status,
        "seeded_count": view.seeded_count,
        "aborted_early": view.aborted_early,
        "last_error": view.last_error,
    }


async def _schedule() -> dict[str, Any]:
    settings = get_settings()
    store = CuratedHotelStore()
    trigger = SeedTrigger(SeedRunTracker(), store, settings=settings)
    outcome = await trigger.maybe_trigger(
        "from_hotellist",
        reason="schedule",
        threshold=settings.curation.schedule_min_entries,
    )
    return {"triggered": outcome.triggered, "run_id": outcome.run_id, "reason": outcome.reason}


async def _warm() -> dict[str, str]:
    settings = get_settings()
    service = StaticDataService(
        VendorGateway(settings.vendor),
        CacheStore(),
        ttl_hours=settings.curation.cache_ttl_hours,
    )
    return await warm_static_cache(service, settings.curation.warm_countries)


def _run_scheduled(name: str, job: Any) -> dict[str, Any]:
    try:
        ensure_runtime_configuration(get_settings())
        result = asyncio.run(job())
    except CuratorError as exc:
        report = build_error_report(exc, task=name)
        logger.error("%s failed: %s", name, exc, extra={"status": report.code})
        return {"status": "error", "error": report.to_dict()}
    logger.info("%s finished", name, extra={"status": "ok"})
    return {"status": "ok", "result": result}


@celery_app.task(name="hotel_curator.process_seed_run")
def process_seed_run(run_id: str) -> dict[str, Any]:
    """Run a queued seed run; failures are recorded on the run, not raised."""

    return run_seed(run_id)


@celery_app.task(name="hotel_curator.schedule_curated_seed")
def schedule_curated_seed() -> dict[str, Any]:
    """Queue a buffered seed when the curated store is below its scheduled minimum."""

    return _run_scheduled("schedule_curated_seed", _schedule)


@celery_app.task(name="hotel_curator.warm_vendor_cache")
def warm_vendor_cache() -> dict[str, Any]:
    """Refresh the cached hotel list and city lists."""

    return _run_scheduled("warm_vendor_cache", _warm)


__all__ = [
    "process_seed_run",
    "run_seed",
    "schedule_curated_seed",
    "warm_vendor_cache",
]
