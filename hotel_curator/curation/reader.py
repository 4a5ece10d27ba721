"""Paged reads of the curated collection."""

from __future__ import annotations

import asyncio
from typing import Any

from ..models.base import session_scope
from ..models.repository import CuratedHotelRepository
from ..schemas.curation import CuratedPage
from ..schemas.hotels import CuratedHotelRecord
from ..utils.logging import setup_logger
from .runs import SeedRunTracker, SeedTrigger

logger = setup_logger(__name__, context={"component": "CuratedReader"})

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(limit)))


class CuratedHotelReader:
    """Serves curated pages and reports whether seeding is in progress.

    Readers never fail because seeding has not finished: an empty store
    with no active run starts the fast streaming seed and reports
    ``seeding=True``.
    """

    def __init__(self, tracker: SeedRunTracker, trigger: SeedTrigger) -> None:
        self._tracker = tracker
        self._trigger = trigger

    async def read(self, limit: int | None = DEFAULT_LIMIT, cursor: str | None = None) -> CuratedPage:
        size = clamp_limit(limit)
        hotels = await asyncio.to_thread(self._page, size, cursor)
        next_cursor = hotels[-1].hotel_id if len(hotels) == size else None
        page = CuratedPage(hotels=hotels, next_cursor=next_cursor)

        active = await self._tracker.active()
        if active is not None:
            page.seeding = True
            page.stage = active.stage
            page.run_id = active.id
            page.seeded_count = active.seeded_count
            return page

        if not hotels and cursor is None:
            outcome = await self._trigger.maybe_trigger("fast_stream", reason="empty_read")
            logger.info(
                "Curated store empty; seed trigger returned %s",
                outcome.reason,
                extra={"run_id": outcome.run_id or "-", "status": outcome.reason},
            )
            if outcome.triggered or outcome.reason == "already_running":
                page.seeding = True
                page.stage = "queued"
                page.run_id = outcome.run_id
                page.seeded_count = 0
        return page

    async def debug(self) -> dict[str, Any]:
        count = await asyncio.to_thread(self._count)
        latest = await self._tracker.latest()
        return {
            "curated_count": count,
            "latest_seed": latest.model_dump(mode="json") if latest is not None else None,
        }

    def _page(self, limit: int, cursor: str | None) -> list[CuratedHotelRecord]:
        with session_scope() as session:
            rows = CuratedHotelRepository(session).page(limit=limit, cursor=cursor)
            return [CuratedHotelRecord.model_validate(row) for row in rows]

    def _count(self) -> int:
        with session_scope() as session:
            return CuratedHotelRepository(session).count()
