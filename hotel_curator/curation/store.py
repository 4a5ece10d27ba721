"""Async facade over the curated hotel collection."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from ..models.base import session_scope
from ..models.repository import CuratedHotelRepository, UpsertCounts
from ..monitoring.metrics import record_curated_writes
from ..schemas.hotels import CuratedHotelRecord
from ..utils.clock import Clock, SystemClock
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "CuratedStore"})


class CuratedHotelStore:
    """Writes and reads curated hotels from worker threads.

    Each call runs in its own transaction, so a batch is either fully
    committed or not at all.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    async def upsert(self, records: Sequence[CuratedHotelRecord]) -> UpsertCounts:
        if not records:
            return UpsertCounts()
        return await asyncio.to_thread(self._upsert, list(records))

    async def ids_missing_hero_image(self, hotel_ids: Iterable[str]) -> list[str]:
        return await asyncio.to_thread(self._missing, list(hotel_ids))

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def _upsert(self, records: list[CuratedHotelRecord]) -> UpsertCounts:
        with session_scope() as session:
            counts = CuratedHotelRepository(session).upsert_many(records, now=self._clock.now())
        record_curated_writes(counts.inserted, counts.updated)
        logger.debug(
            "Upserted %d curated hotels (%d new, %d merged)",
            len(records),
            counts.inserted,
            counts.updated,
        )
        return counts

    def _missing(self, hotel_ids: list[str]) -> list[str]:
        with session_scope() as session:
            return CuratedHotelRepository(session).ids_missing_hero_image(hotel_ids)

    def _count(self) -> int:
        with session_scope() as session:
            return CuratedHotelRepository(session).count()
