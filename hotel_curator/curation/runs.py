"""Seed run bookkeeping, the single-flight trigger and the run executor."""

from __future__ import annotations

import asyncio
import socket
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from ..cache.store import CacheStore
from ..exceptions import CuratorError
from ..ingest.stream import CatalogStreamIngestor, StreamProgress
from ..models.base import session_scope
from ..models.repository import SeedLeaseRepository, SeedRunRepository
from ..monitoring.metrics import record_seed_run
from ..schemas.curation import BufferedSeedRequest, SeedMode, SeedRunView, StreamSeedRequest
from ..utils.clock import Clock, SystemClock
from ..utils.config import GlobalSettings, get_settings
from ..utils.logging import setup_logger
from ..vendor.gateway import VendorGateway
from ..vendor.static_data import StaticDataService
from .seeder import CurationSeeder, SeedProgress
from .store import CuratedHotelStore

logger = setup_logger(__name__, context={"component": "SeedRuns"})

LEASE_NAME = "curation-seed"


class SeedRunTracker:
    """Async access to ``seed_runs`` rows; every call is its own transaction."""

    def __init__(self, *, clock: Clock | None = None, stale_after_seconds: int | None = None) -> None:
        self._clock = clock or SystemClock()
        self._stale_after = stale_after_seconds or get_settings().curation.run_stale_seconds

    async def create(self, mode: SeedMode, request: dict[str, Any]) -> SeedRunView:
        run_id = str(uuid.uuid4())
        return await self._call(
            lambda repo: repo.create(run_id, mode=mode, request=request, now=self._clock.now())
        )

    async def mark_running(self, run_id: str) -> SeedRunView | None:
        now = self._clock.now()
        return await self._call(
            lambda repo: repo.update(run_id, now=now, status="running", stage="starting", started_at=now)
        )

    async def progress(
        self,
        run_id: str,
        *,
        stage: str,
        processed: int,
        total: int | None = None,
        per_group_counts: dict[str, int] | None = None,
        seeded_count: int | None = None,
    ) -> SeedRunView | None:
        fields: dict[str, Any] = {"stage": stage, "processed": processed}
        if total is not None:
            fields["total"] = total
        if per_group_counts is not None:
            fields["per_group_counts"] = dict(per_group_counts)
        if seeded_count is not None:
            fields["seeded_count"] = seeded_count
        return await self._call(lambda repo: repo.update(run_id, now=self._clock.now(), **fields))

    async def complete(
        self,
        run_id: str,
        *,
        seeded: int,
        inserted: int | None,
        updated: int | None,
        per_group_counts: dict[str, int],
        aborted_early: bool | None = None,
    ) -> SeedRunView | None:
        now = self._clock.now()
        return await self._call(
            lambda repo: repo.update(
                run_id,
                now=now,
                status="done",
                stage="done",
                processed=seeded,
                seeded_count=seeded,
                inserted_count=inserted,
                updated_count=updated,
                per_group_counts=dict(per_group_counts),
                aborted_early=aborted_early,
                finished_at=now,
            )
        )

    async def fail(self, run_id: str, error: dict[str, Any]) -> SeedRunView | None:
        now = self._clock.now()
        return await self._call(
            lambda repo: repo.update(
                run_id, now=now, status="error", stage="error", last_error=error, finished_at=now
            )
        )

    async def get(self, run_id: str) -> SeedRunView | None:
        return await self._call(lambda repo: repo.get(run_id))

    async def active(self) -> SeedRunView | None:
        """Newest queued or running run that has reported within the stale window."""

        cutoff = self._clock.now() - timedelta(seconds=self._stale_after)
        return await self._call(lambda repo: repo.find_active(updated_after=cutoff))

    async def latest(self) -> SeedRunView | None:
        return await self._call(lambda repo: repo.latest())

    async def _call(self, operation: Callable[[SeedRunRepository], Any]) -> SeedRunView | None:
        def run() -> SeedRunView | None:
            with session_scope() as session:
                row = operation(SeedRunRepository(session))
                return SeedRunView.model_validate(row) if row is not None else None

        return await asyncio.to_thread(run)


@dataclass(slots=True)
class TriggerResult:
    triggered: bool
    run_id: str | None
    reason: str


def _dispatch_with_celery(run_id: str) -> None:
    from ..tasks.seeding import process_seed_run

    process_seed_run.delay(run_id)


def default_request(mode: SeedMode, settings: GlobalSettings, **overrides: Any) -> dict[str, Any]:
    """Options for a run of ``mode`` built from configuration plus ``overrides``."""

    countries = overrides.pop("countries", None)
    if mode == "fast_stream":
        if countries:
            overrides["allowed_groups"] = countries
        return StreamSeedRequest.from_settings(settings.curation, **overrides).model_dump()

    request = BufferedSeedRequest.from_settings(settings.curation, **overrides)
    if countries:
        request.filters.countries = [code.upper() for code in countries]
    return request.model_dump()


class SeedTrigger:
    """Starts a seed run unless the store is ready, a run is in flight or the cooldown lease is held.

    The cooldown is a lease row written with a conditional update, so the
    guard holds across processes sharing the database.
    """

    def __init__(
        self,
        tracker: SeedRunTracker,
        store: CuratedHotelStore,
        *,
        settings: GlobalSettings | None = None,
        clock: Clock | None = None,
        dispatch: Callable[[str], Any] | None = None,
        holder: str | None = None,
    ) -> None:
        self._tracker = tracker
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._dispatch = dispatch or _dispatch_with_celery
        self._holder = holder or f"{socket.gethostname()}-{uuid.uuid4().hex[:8]}"

    async def maybe_trigger(
        self,
        mode: SeedMode = "fast_stream",
        request: dict[str, Any] | None = None,
        *,
        reason: str = "auto",
        force: bool = False,
        threshold: int | None = None,
    ) -> TriggerResult:
        """Create and dispatch a run if the guards allow it.

        ``threshold`` overrides the configured readiness count. ``force``
        skips the readiness check and the cooldown lease but never starts a
        second run while one is active.
        """

        curation = self._settings.curation
        if not force:
            count = await self._store.count()
            if count >= (threshold or curation.ready_threshold):
                return TriggerResult(False, None, "ready")

        active = await self._tracker.active()
        if active is not None:
            return TriggerResult(False, active.id, "already_running")

        if not force and not await self._acquire_lease(curation.trigger_cooldown_seconds):
            logger.info("Seed trigger suppressed by cooldown lease", extra={"status": "cooldown"})
            return TriggerResult(False, None, "cooldown")

        run = await self._tracker.create(mode, request or default_request(mode, self._settings))
        try:
            await asyncio.to_thread(self._dispatch, run.id)
        except Exception as exc:
            logger.exception(
                "Failed to dispatch seed run", extra={"run_id": run.id, "status": "dispatch_failed"}
            )
            await self._tracker.fail(run.id, {"code": "dispatch_failed", "message": str(exc)})
            return TriggerResult(False, run.id, "dispatch_failed")

        logger.info(
            "Seed run %s dispatched (%s, reason=%s)",
            run.id,
            mode,
            reason,
            extra={"run_id": run.id, "stage": "queued"},
        )
        return TriggerResult(True, run.id, reason)

    async def _acquire_lease(self, ttl_seconds: int) -> bool:
        now = self._clock.now()

        def acquire() -> bool:
            with session_scope() as session:
                return SeedLeaseRepository(session).try_acquire(
                    LEASE_NAME, holder=self._holder, now=now, ttl_seconds=ttl_seconds
                )

        return await asyncio.to_thread(acquire)


async def execute_seed_run(
    run_id: str,
    *,
    gateway: VendorGateway | None = None,
    clock: Clock | None = None,
    settings: GlobalSettings | None = None,
) -> SeedRunView | None:
    """Run a queued seed run to completion, recording the outcome on the run.

    Failures are written to ``last_error`` and the run ends in ``error``;
    nothing is raised to the caller.
    """

    settings = settings or get_settings()
    clock = clock or SystemClock()
    tracker = SeedRunTracker(clock=clock, stale_after_seconds=settings.curation.run_stale_seconds)

    run = await tracker.get(run_id)
    if run is None:
        logger.error("Seed run not found", extra={"run_id": run_id, "status": "missing"})
        return None
    if run.status not in ("queued", "running"):
        logger.warning(
            "Seed run already finished with status %s", run.status, extra={"run_id": run_id}
        )
        return run

    mode = run.mode
    started = time.perf_counter()
    await tracker.mark_running(run_id)
    logger.info("Seed run started in %s mode", mode, extra={"run_id": run_id, "stage": "starting"})

    try:
        gateway = gateway or VendorGateway(settings.vendor)
        store = CuratedHotelStore(clock=clock)
        if mode == "fast_stream":
            options = StreamSeedRequest.model_validate(run.request)

            async def on_stream_progress(progress: StreamProgress) -> None:
                await tracker.progress(
                    run_id,
                    stage=progress.stage,
                    processed=progress.processed,
                    per_group_counts=progress.per_group_counts,
                    seeded_count=progress.committed,
                )

            result = await CatalogStreamIngestor(gateway, store, clock=clock).stream(
                options, on_stream_progress
            )
            view = await tracker.complete(
                run_id,
                seeded=result.seeded,
                inserted=result.inserted,
                updated=result.updated,
                per_group_counts=result.per_group_counts,
                aborted_early=result.aborted_early,
            )
        else:
            options = BufferedSeedRequest.model_validate(run.request)
            static_data = StaticDataService(
                gateway, CacheStore(clock=clock), ttl_hours=settings.curation.cache_ttl_hours
            )

            async def on_seed_progress(progress: SeedProgress) -> None:
                await tracker.progress(
                    run_id,
                    stage=progress.stage,
                    processed=progress.processed,
                    total=progress.total,
                    per_group_counts=progress.per_group_counts,
                    seeded_count=progress.seeded_count,
                )

            seeder = CurationSeeder(static_data, store, settings=settings.curation, clock=clock)
            seed_result = await seeder.seed(options, on_seed_progress)
            view = await tracker.complete(
                run_id,
                seeded=seed_result.seeded,
                inserted=seed_result.inserted,
                updated=seed_result.updated,
                per_group_counts=seed_result.per_group_counts,
            )
    except CuratorError as exc:
        logger.error(
            "Seed run failed: %s",
            exc,
            extra={"run_id": run_id, "status": exc.code, "stage": "error"},
        )
        record_seed_run(mode, "error", time.perf_counter() - started)
        return await tracker.fail(run_id, exc.as_dict())
    except Exception as exc:
        logger.exception("Seed run crashed", extra={"run_id": run_id, "status": "internal_error"})
        record_seed_run(mode, "error", time.perf_counter() - started)
        return await tracker.fail(
            run_id, {"code": "internal_error", "message": f"{type(exc).__name__}: {exc}"}
        )

    record_seed_run(mode, "done", time.perf_counter() - started)
    logger.info(
        "Seed run finished",
        extra={"run_id": run_id, "stage": "done", "duration_ms": int((time.perf_counter() - started) * 1000)},
    )
    return view
