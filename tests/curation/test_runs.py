"""Tests for seed run tracking, the single-flight trigger and the run executor."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import Mock

import httpx
import pytest
from prometheus_client import REGISTRY

from hotel_curator.curation.runs import (
    SeedRunTracker,
    SeedTrigger,
    default_request,
    execute_seed_run,
)
from hotel_curator.curation.store import CuratedHotelStore
from hotel_curator.ingest.stream import CatalogStreamIngestor
from hotel_curator.schemas.hotels import CuratedHotelRecord
from hotel_curator.utils.clock import FrozenClock
from hotel_curator.utils.config import get_settings
from hotel_curator.vendor.gateway import VendorGateway

from tests.fixtures.synthetic.catalog_fixtures import (
    BUFFERED_CATALOG,
    GROUPED_CATALOG,
    HOTEL_DETAILS,
)


def vendor_gateway(routes: dict[str, tuple[int, Any]]) -> VendorGateway:
    async def handler(request: httpx.Request) -> httpx.Response:
        status_code, body = routes[request.url.path]
        return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"), request=request)

    return VendorGateway(transport=httpx.MockTransport(handler))


@pytest.fixture
def tracker(clock: FrozenClock) -> SeedRunTracker:
    return SeedRunTracker(clock=clock, stale_after_seconds=900)


def make_trigger(
    tracker: SeedRunTracker,
    clock: FrozenClock,
    dispatch: Any,
    *,
    holder: str = "worker-a",
) -> SeedTrigger:
    return SeedTrigger(
        tracker,
        CuratedHotelStore(clock=clock),
        clock=clock,
        dispatch=dispatch,
        holder=holder,
    )


class TestDefaultRequest:
    def test_stream_request_uses_countries_as_groups(self) -> None:
        request = default_request("fast_stream", get_settings(), countries=["ae", "gb"])

        assert request["allowed_groups"] == ["AE", "GB"]
        assert request["per_group_limit"] == 40
        assert request["hard_timeout_ms"] == 120000

    def test_buffered_request_filters_countries(self) -> None:
        request = default_request("from_hotellist", get_settings(), countries=["fr"])

        assert request["filters"]["countries"] == ["FR"]
        assert request["limit_per_group"] == 30
        assert "Dubai" in request["filters"]["cities"]

    def test_without_overrides_configuration_applies(self) -> None:
        request = default_request("fast_stream", get_settings())

        assert request["allowed_groups"] == get_settings().curation.stream_countries


class TestSeedRunTracker:
    @pytest.mark.asyncio
    async def test_lifecycle(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        created = await tracker.create("fast_stream", {"allowed_groups": ["AE"]})
        assert created.status == "queued"
        assert created.stage == "queued"

        await tracker.mark_running(created.id)
        clock.advance(seconds=5)
        progressed = await tracker.progress(
            created.id, stage="streaming", processed=3, per_group_counts={"AE": 3}, seeded_count=0
        )
        assert progressed is not None
        assert progressed.status == "running"
        assert progressed.per_group_counts == {"AE": 3}

        done = await tracker.complete(
            created.id, seeded=3, inserted=3, updated=0, per_group_counts={"AE": 3}, aborted_early=True
        )
        assert done is not None
        assert done.status == "done"
        assert done.seeded_count == 3
        assert done.aborted_early is True
        assert done.finished_at is not None
        assert await tracker.active() is None

    @pytest.mark.asyncio
    async def test_stale_runs_are_not_active(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        created = await tracker.create("fast_stream", {})

        active = await tracker.active()
        assert active is not None
        assert active.id == created.id

        clock.advance(seconds=901)
        assert await tracker.active() is None

    @pytest.mark.asyncio
    async def test_fail_records_error(self, tracker: SeedRunTracker) -> None:
        created = await tracker.create("from_hotellist", {})

        failed = await tracker.fail(created.id, {"code": "hotellist_empty", "message": "empty"})

        assert failed is not None
        assert failed.status == "error"
        assert failed.last_error == {"code": "hotellist_empty", "message": "empty"}

    @pytest.mark.asyncio
    async def test_latest_and_missing(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        await tracker.create("fast_stream", {})
        clock.advance(seconds=1)
        newer = await tracker.create("from_hotellist", {})

        latest = await tracker.latest()
        assert latest is not None
        assert latest.id == newer.id
        assert await tracker.get("no-such-run") is None


class TestSeedTrigger:
    @pytest.mark.asyncio
    async def test_ready_store_is_not_seeded(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        await CuratedHotelStore(clock=clock).upsert([CuratedHotelRecord(hotel_id="H1", country="AE")])
        dispatch = Mock()

        outcome = await make_trigger(tracker, clock, dispatch).maybe_trigger(threshold=1)

        assert outcome.triggered is False
        assert outcome.reason == "ready"
        dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_trigger_dispatches_once_while_running(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        dispatch = Mock()
        trigger = make_trigger(tracker, clock, dispatch)

        first = await trigger.maybe_trigger(reason="empty_read")
        second = await trigger.maybe_trigger(reason="empty_read")

        assert first.triggered is True
        assert first.reason == "empty_read"
        dispatch.assert_called_once_with(first.run_id)
        assert second.triggered is False
        assert second.reason == "already_running"
        assert second.run_id == first.run_id

    @pytest.mark.asyncio
    async def test_cooldown_lease_debounces_triggers(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        dispatch = Mock()
        first = await make_trigger(tracker, clock, dispatch).maybe_trigger()
        await tracker.fail(first.run_id, {"code": "timeout", "message": "slow"})

        clock.advance(seconds=60)
        blocked = await make_trigger(tracker, clock, dispatch, holder="worker-b").maybe_trigger()
        assert blocked.triggered is False
        assert blocked.reason == "cooldown"

        clock.advance(seconds=241)
        retried = await make_trigger(tracker, clock, dispatch, holder="worker-b").maybe_trigger()
        assert retried.triggered is True
        assert dispatch.call_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_triggers_start_one_run(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        dispatch = Mock()
        triggers = [make_trigger(tracker, clock, dispatch, holder=f"worker-{i}") for i in range(3)]

        outcomes = await asyncio.gather(*(trigger.maybe_trigger() for trigger in triggers))

        assert sum(1 for outcome in outcomes if outcome.triggered) == 1
        assert dispatch.call_count == 1
        assert {outcome.reason for outcome in outcomes if not outcome.triggered} <= {
            "cooldown",
            "already_running",
        }

    @pytest.mark.asyncio
    async def test_force_skips_cooldown_but_not_active_run(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        dispatch = Mock()
        trigger = make_trigger(tracker, clock, dispatch)
        first = await trigger.maybe_trigger()

        while_running = await trigger.maybe_trigger(force=True)
        assert while_running.reason == "already_running"

        await tracker.complete(first.run_id, seeded=0, inserted=0, updated=0, per_group_counts={})
        forced = await trigger.maybe_trigger(reason="manual", force=True)
        assert forced.triggered is True
        assert forced.reason == "manual"

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_recorded_on_the_run(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        dispatch = Mock(side_effect=ConnectionError("broker unreachable"))

        outcome = await make_trigger(tracker, clock, dispatch).maybe_trigger()

        assert outcome.triggered is False
        assert outcome.reason == "dispatch_failed"
        run = await tracker.get(outcome.run_id)
        assert run is not None
        assert run.status == "error"
        assert run.last_error["code"] == "dispatch_failed"
        assert "broker unreachable" in run.last_error["message"]


class TestExecuteSeedRun:
    @pytest.mark.asyncio
    async def test_stream_run_completes(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        request = default_request("fast_stream", get_settings(), countries=["AE", "GB"])
        run = await tracker.create("fast_stream", request)
        gateway = vendor_gateway({"/staticdata/hotellist": (200, GROUPED_CATALOG)})
        before = REGISTRY.get_sample_value(
            "seed_runs_total", {"mode": "fast_stream", "status": "done"}
        ) or 0.0

        view = await execute_seed_run(run.id, gateway=gateway, clock=clock)

        assert view is not None
        assert view.status == "done"
        assert view.seeded_count == 5
        assert view.inserted_count == 5
        assert view.per_group_counts == {"AE": 3, "GB": 2}
        assert view.aborted_early is False
        assert view.started_at is not None
        assert await CuratedHotelStore().count() == 5
        assert REGISTRY.get_sample_value(
            "seed_runs_total", {"mode": "fast_stream", "status": "done"}
        ) == pytest.approx(before + 1)

    @pytest.mark.asyncio
    async def test_buffered_run_completes(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        request = default_request("from_hotellist", get_settings(), countries=["AE", "GB"])
        run = await tracker.create("from_hotellist", request)
        gateway = vendor_gateway(
            {
                "/staticdata/hotellist": (200, BUFFERED_CATALOG),
                "/staticdata/hoteldetails": (200, HOTEL_DETAILS),
            }
        )

        view = await execute_seed_run(run.id, gateway=gateway, clock=clock)

        assert view is not None
        assert view.status == "done"
        assert view.seeded_count == 4
        assert view.per_group_counts == {"Dubai": 2, "London": 2}
        assert view.aborted_early is None

    @pytest.mark.asyncio
    async def test_vendor_failure_is_recorded(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        run = await tracker.create("fast_stream", default_request("fast_stream", get_settings()))
        gateway = vendor_gateway({"/staticdata/hotellist": (401, {"message": "bad credentials"})})

        view = await execute_seed_run(run.id, gateway=gateway, clock=clock)

        assert view is not None
        assert view.status == "error"
        assert view.last_error["code"] == "auth_error"
        assert view.last_error["upstream_status"] == 401

    @pytest.mark.asyncio
    async def test_buffered_empty_catalog_is_recorded(
        self, tracker: SeedRunTracker, clock: FrozenClock
    ) -> None:
        run = await tracker.create("from_hotellist", default_request("from_hotellist", get_settings()))
        gateway = vendor_gateway({"/staticdata/hotellist": (200, {"hotels": []})})

        view = await execute_seed_run(run.id, gateway=gateway, clock=clock)

        assert view is not None
        assert view.last_error["code"] == "hotellist_empty"

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_recorded(
        self,
        tracker: SeedRunTracker,
        clock: FrozenClock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def explode(self: CatalogStreamIngestor, *args: Any, **kwargs: Any) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(CatalogStreamIngestor, "stream", explode)
        run = await tracker.create("fast_stream", default_request("fast_stream", get_settings()))

        view = await execute_seed_run(run.id, gateway=vendor_gateway({}), clock=clock)

        assert view is not None
        assert view.status == "error"
        assert view.last_error == {"code": "internal_error", "message": "RuntimeError: boom"}

    @pytest.mark.asyncio
    async def test_missing_and_finished_runs(self, tracker: SeedRunTracker, clock: FrozenClock) -> None:
        assert await execute_seed_run("missing", gateway=vendor_gateway({}), clock=clock) is None

        run = await tracker.create("fast_stream", default_request("fast_stream", get_settings()))
        await tracker.complete(run.id, seeded=1, inserted=1, updated=0, per_group_counts={"AE": 1})

        view = await execute_seed_run(run.id, gateway=vendor_gateway({}), clock=clock)

        assert view is not None
        assert view.status == "done"
        assert view.seeded_count == 1
