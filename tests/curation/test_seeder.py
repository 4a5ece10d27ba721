"""Tests for buffered curation seeding."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from hotel_curator.curation.seeder import CurationSeeder, SeedProgress, filter_candidates, seed_date
from hotel_curator.curation.store import CuratedHotelStore
from hotel_curator.exceptions import (
    CatalogEmptyError,
    CatalogFetchError,
    SeedTimeoutError,
    ServerError,
)
from hotel_curator.models.base import session_scope
from hotel_curator.models.curated_hotel import CuratedHotel
from hotel_curator.schemas.curation import BufferedSeedRequest, SeedFilters
from hotel_curator.utils.clock import FrozenClock
from hotel_curator.utils.config import CurationSettings
from hotel_curator.vendor.shapes import extract_catalog_records

from tests.fixtures.synthetic.catalog_fixtures import BUFFERED_CATALOG, HOTEL_DETAILS


class FakeStaticData:
    """Static-data double returning canned catalog and detail payloads."""

    def __init__(
        self,
        catalog: Any = BUFFERED_CATALOG,
        details: Any = HOTEL_DETAILS,
        *,
        catalog_error: Exception | None = None,
        details_error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.catalog = catalog
        self.details = details
        self.catalog_error = catalog_error
        self.details_error = details_error
        self.delay = delay
        self.detail_requests: list[list[str]] = []
        self.catalog_calls: list[dict[str, Any]] = []

    async def get_hotel_list(self, **kwargs: Any) -> Any:
        self.catalog_calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.catalog_error is not None:
            raise self.catalog_error
        return self.catalog

    async def get_hotel_details(self, hotel_ids: Sequence[str], **kwargs: Any) -> Any:
        self.detail_requests.append(list(hotel_ids))
        if self.details_error is not None:
            raise self.details_error
        return self.details


def make_request(**overrides: Any) -> BufferedSeedRequest:
    values: dict[str, Any] = {
        "filters": SeedFilters(
            countries=["AE", "GB", "FR", "CH"],
            cities=["Dubai", "London", "Paris", "Zurich"],
            min_stars=4,
            require_geo=True,
        ),
        "limit_per_group": 30,
        "limit_total": 200,
    }
    values.update(overrides)
    return BufferedSeedRequest(**values)


def make_seeder(static_data: FakeStaticData, clock: FrozenClock, **settings: Any) -> CurationSeeder:
    return CurationSeeder(
        static_data,  # type: ignore[arg-type]
        CuratedHotelStore(clock=clock),
        settings=CurationSettings(**settings),
        clock=clock,
    )


def test_filter_candidates() -> None:
    records = extract_catalog_records(BUFFERED_CATALOG)

    kept = filter_candidates(records, make_request().filters)

    assert sorted(record.hotel_id for record in kept) == ["D1", "D2", "L1", "L2", "P1", "Z1"]


def test_filter_without_countries_keeps_every_country() -> None:
    records = extract_catalog_records(BUFFERED_CATALOG)

    kept = filter_candidates(records, SeedFilters())

    assert len(kept) == 9


def test_seed_date(clock: FrozenClock) -> None:
    assert seed_date(clock.now()) == "2026-10-19"


@pytest.mark.asyncio
async def test_seed_writes_sample_and_enriches(clock: FrozenClock) -> None:
    static_data = FakeStaticData()
    seeder = make_seeder(static_data, clock)

    result = await seeder.seed(make_request())

    assert result.seeded == 6
    assert result.inserted == 6
    assert result.updated == 0
    assert result.per_group_counts == {"Dubai": 2, "London": 2, "Paris": 1, "Zurich": 1}
    assert result.enriched == 2
    assert len(result.sample_hotel_ids) == 6
    assert static_data.catalog_calls[0]["bypass_cache"] is True

    with session_scope() as session:
        d1 = session.get(CuratedHotel, "D1")
        assert d1 is not None
        assert d1.hero_image_url == "https://img.test/d1-hero.jpg"
        assert d1.facilities_count == 3
        assert d1.name == "Hotel D1"
        assert d1.source == "wanderbeds"
        p1 = session.get(CuratedHotel, "P1")
        assert p1 is not None
        assert p1.hero_image_url is None


@pytest.mark.asyncio
async def test_reseeding_updates_existing_hotels(clock: FrozenClock) -> None:
    static_data = FakeStaticData()
    seeder = make_seeder(static_data, clock)
    await seeder.seed(make_request())

    clock.advance(hours=1)
    result = await seeder.seed(make_request())

    assert result.inserted == 0
    assert result.updated == 6
    assert result.enriched == 0
    assert "D1" not in static_data.detail_requests[-1]
    assert await CuratedHotelStore().count() == 6


@pytest.mark.asyncio
async def test_progress_reports_each_stage(clock: FrozenClock) -> None:
    seen: list[SeedProgress] = []

    async def on_progress(progress: SeedProgress) -> None:
        seen.append(progress)

    seeder = make_seeder(FakeStaticData(), clock, first_write_batch=2, write_batch=3)
    await seeder.seed(make_request(), on_progress)

    stages = [progress.stage for progress in seen]
    assert stages[0] == "fetching"
    assert stages[1] == "filtering"
    assert stages[-2:] == ["enriching", "done"]
    writes = [progress.processed for progress in seen if progress.stage == "writing"]
    assert writes == [0, 2, 5, 6]
    assert seen[1].total == 9
    assert seen[-1].seeded_count == 6


@pytest.mark.asyncio
async def test_enrichment_can_be_disabled(clock: FrozenClock) -> None:
    static_data = FakeStaticData()
    seeder = make_seeder(static_data, clock)

    result = await seeder.seed(make_request(enrich_details=False))

    assert result.enriched == 0
    assert static_data.detail_requests == []


@pytest.mark.asyncio
async def test_enrichment_chunks_and_skips_failures(clock: FrozenClock) -> None:
    static_data = FakeStaticData(details_error=ServerError("down", status=503))
    seeder = make_seeder(static_data, clock, enrich_chunk_size=4)

    result = await seeder.seed(make_request())

    assert result.seeded == 6
    assert result.enriched == 0
    assert [len(chunk) for chunk in static_data.detail_requests] == [4, 2]


@pytest.mark.asyncio
async def test_limits_cap_the_sample(clock: FrozenClock) -> None:
    seeder = make_seeder(FakeStaticData(), clock)

    result = await seeder.seed(make_request(limit_per_group=1, limit_total=3))

    assert result.seeded == 3
    assert all(count == 1 for count in result.per_group_counts.values())


@pytest.mark.asyncio
async def test_catalog_fetch_failure_is_typed(clock: FrozenClock) -> None:
    error = ServerError("vendor down", status=503, upstream_ms=41)
    seeder = make_seeder(FakeStaticData(catalog_error=error), clock)

    with pytest.raises(CatalogFetchError) as exc_info:
        await seeder.seed(make_request())

    details = exc_info.value.as_dict()
    assert details["code"] == "hotellist_fetch_failed"
    assert details["upstream_status"] == 503
    assert details["upstream_ms"] == 41


@pytest.mark.asyncio
async def test_empty_catalog_is_an_error(clock: FrozenClock) -> None:
    seeder = make_seeder(FakeStaticData(catalog={"hotels": []}), clock)

    with pytest.raises(CatalogEmptyError):
        await seeder.seed(make_request())


@pytest.mark.asyncio
async def test_runtime_budget_is_enforced(clock: FrozenClock) -> None:
    seeder = make_seeder(FakeStaticData(delay=0.05), clock)

    with pytest.raises(SeedTimeoutError) as exc_info:
        await seeder.seed(make_request(max_runtime_ms=1))

    assert "fetching" in str(exc_info.value)
    assert await CuratedHotelStore().count() == 0
