"""Buffered curation seeding from the full vendor catalog."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ..exceptions import CatalogEmptyError, CatalogFetchError, SeedTimeoutError, VendorError
from ..schemas.curation import BufferedSeedRequest, SeedFilters
from ..schemas.hotels import CatalogRecord, CuratedHotelRecord
from ..utils.clock import Clock, SystemClock
from ..utils.config import CurationSettings, get_settings
from ..utils.logging import setup_logger
from ..vendor.shapes import extract_catalog_records, parse_hotel_details
from ..vendor.static_data import StaticDataService
from .sampling import UNKNOWN_GROUP, city_matcher, sample_by_group
from .store import CuratedHotelStore

logger = setup_logger(__name__, context={"component": "CurationSeeder"})

SOURCE = "wanderbeds"
SAMPLE_ID_COUNT = 10


@dataclass(slots=True)
class SeedProgress:
    stage: str
    processed: int
    total: int | None
    per_group_counts: dict[str, int]
    seeded_count: int


SeedProgressCallback = Callable[[SeedProgress], Awaitable[None]]


@dataclass(slots=True)
class SeedResult:
    """Outcome of one buffered seeding run."""

    seeded: int
    inserted: int
    updated: int
    per_group_counts: dict[str, int] = field(default_factory=dict)
    sample_hotel_ids: list[str] = field(default_factory=list)
    enriched: int = 0


def filter_candidates(records: Sequence[CatalogRecord], filters: SeedFilters) -> list[CatalogRecord]:
    """Keep records in the allowed countries with enough stars and, if required, coordinates."""

    countries = set(filters.countries)
    kept: list[CatalogRecord] = []
    for record in records:
        if not record.hotel_id:
            continue
        if countries and record.country not in countries:
            continue
        if filters.min_stars and (record.star_rating or 0) < filters.min_stars:
            continue
        if filters.require_geo and not record.has_geo:
            continue
        kept.append(record)
    return kept


class _Budget:
    def __init__(self, max_runtime_ms: int) -> None:
        self._deadline = time.monotonic() + max_runtime_ms / 1000
        self._max_runtime_ms = max_runtime_ms

    def check(self, stage: str) -> None:
        if time.monotonic() > self._deadline:
            raise SeedTimeoutError(
                f"Seed run exceeded its {self._max_runtime_ms}ms budget during {stage}"
            )


class CurationSeeder:
    """Fetches the whole catalog, samples it per city and upserts the sample.

    Stages are reported as ``fetching``, ``filtering``, ``writing``,
    ``enriching`` (when enabled) and ``done``. Any failure propagates as a
    typed error for the run executor to record. Unlike the streaming path,
    running out of budget is a failure here.
    """

    def __init__(
        self,
        static_data: StaticDataService,
        store: CuratedHotelStore,
        *,
        settings: CurationSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._static_data = static_data
        self._store = store
        self._settings = settings or get_settings().curation
        self._clock = clock or SystemClock()

    async def seed(
        self,
        request: BufferedSeedRequest,
        on_progress: SeedProgressCallback | None = None,
    ) -> SeedResult:
        budget = _Budget(request.max_runtime_ms)
        now = self._clock.now()

        await self._emit(on_progress, SeedProgress("fetching", 0, None, {}, 0))
        candidates = await self._fetch_catalog(request)
        budget.check("fetching")

        await self._emit(on_progress, SeedProgress("filtering", 0, len(candidates), {}, 0))
        filtered = filter_candidates(candidates, request.filters)
        sample = sample_by_group(
            filtered,
            cities=request.filters.cities,
            limit_per_group=request.limit_per_group,
            limit_total=request.limit_total,
            date_key=seed_date(now),
        )
        per_group = _group_counts(sample, request.filters.cities)
        logger.info(
            "Sampled %d of %d candidates (%d after filters)",
            len(sample),
            len(candidates),
            len(filtered),
            extra={"stage": "filtering"},
        )
        budget.check("filtering")

        records = [record.to_curated(source=SOURCE, seeded_at=now) for record in sample]
        result = SeedResult(
            seeded=0,
            inserted=0,
            updated=0,
            per_group_counts=per_group,
            sample_hotel_ids=[record.hotel_id for record in records[:SAMPLE_ID_COUNT]],
        )
        await self._write(records, result, budget, on_progress)

        if request.enrich_details and records:
            await self._emit(
                on_progress,
                SeedProgress("enriching", result.seeded, len(records), per_group, result.seeded),
            )
            result.enriched = await self._enrich([r.hotel_id for r in records], budget)

        await self._emit(
            on_progress,
            SeedProgress("done", result.seeded, len(records), per_group, result.seeded),
        )
        logger.info(
            "Seed finished: %d seeded (%d inserted, %d updated, %d enriched)",
            result.seeded,
            result.inserted,
            result.updated,
            result.enriched,
            extra={"stage": "done", "status": "ok"},
        )
        return result

    async def _fetch_catalog(self, request: BufferedSeedRequest) -> list[CatalogRecord]:
        started = time.perf_counter()
        try:
            payload = await self._static_data.get_hotel_list(
                timeout_ms=request.catalog_timeout_ms,
                bypass_cache=request.bypass_cache,
            )
        except VendorError as exc:
            raise CatalogFetchError(
                f"Failed to fetch hotel list: {exc}",
                upstream_status=exc.status,
                upstream_ms=exc.upstream_ms or int((time.perf_counter() - started) * 1000),
            ) from exc

        records = extract_catalog_records(payload)
        if not records:
            raise CatalogEmptyError(
                "Hotel list response contained no hotels",
                upstream_ms=int((time.perf_counter() - started) * 1000),
            )
        return records

    async def _write(
        self,
        records: list[CuratedHotelRecord],
        result: SeedResult,
        budget: _Budget,
        on_progress: SeedProgressCallback | None,
    ) -> None:
        total = len(records)
        await self._emit(on_progress, SeedProgress("writing", 0, total, result.per_group_counts, 0))

        offset = 0
        size = self._settings.first_write_batch
        while offset < total:
            batch = records[offset : offset + size]
            counts = await self._store.upsert(batch)
            offset += len(batch)
            result.seeded = offset
            result.inserted += counts.inserted
            result.updated += counts.updated
            await self._emit(
                on_progress,
                SeedProgress("writing", offset, total, result.per_group_counts, offset),
            )
            budget.check("writing")
            size = self._settings.write_batch

    async def _enrich(self, hotel_ids: list[str], budget: _Budget) -> int:
        missing = await self._store.ids_missing_hero_image(hotel_ids)
        chunk_size = self._settings.enrich_chunk_size
        updates: list[CuratedHotelRecord] = []

        for start in range(0, len(missing), chunk_size):
            chunk = missing[start : start + chunk_size]
            try:
                payload = await self._static_data.get_hotel_details(
                    chunk, bypass_cache=True, allow_stale=True
                )
            except VendorError as exc:
                logger.warning(
                    "Skipping enrichment for %d hotels: %s",
                    len(chunk),
                    exc,
                    extra={"stage": "enriching", "status": exc.code},
                )
            else:
                wanted = set(chunk)
                for detail in parse_hotel_details(payload):
                    if detail.hotel_id in wanted:
                        updates.append(
                            CuratedHotelRecord(hotel_id=detail.hotel_id, **detail.enrichment_fields())
                        )
            budget.check("enriching")

        if updates:
            await self._store.upsert(updates)
        return len(updates)

    async def _emit(self, on_progress: SeedProgressCallback | None, progress: SeedProgress) -> None:
        logger.debug("Seed stage %s", progress.stage, extra={"stage": progress.stage})
        if on_progress is not None:
            await on_progress(progress)


def _group_counts(records: Sequence[CatalogRecord], cities: Sequence[str]) -> dict[str, int]:
    match = city_matcher(cities)
    counts: dict[str, int] = {}
    for record in records:
        group = match(record.city) or UNKNOWN_GROUP
        counts[group] = counts.get(group, 0) + 1
    return counts


def seed_date(now: datetime) -> str:
    return now.date().isoformat()
