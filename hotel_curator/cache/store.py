"""TTL-keyed durable cache for vendor responses."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..models.base import session_scope
from ..models.repository import CacheEntryRepository
from ..monitoring.metrics import record_cache_read
from ..utils.clock import Clock, SystemClock, as_utc
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "CacheStore"})


@dataclass(slots=True)
class CacheRead:
    """A cached payload together with its age information."""

    payload: dict[str, Any]
    cached_at: datetime
    expired: bool

    def as_stale(self) -> dict[str, Any]:
        """Return the payload tagged as a stale fallback, distinguishable from a fresh hit."""

        return {
            **self.payload,
            "stale": True,
            "cached_at": self.cached_at.isoformat(),
            "source": "cache",
        }


class CacheStore:
    """Key/TTL cache over the ``cache_entries`` table.

    An entry is fresh while ``now < cached_at + ttl_hours``. Expired entries
    are only returned when the caller asks for them with ``allow_expired``;
    deciding to serve them is the caller's call.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    async def get(self, key: str, *, allow_expired: bool = False) -> CacheRead | None:
        return await asyncio.to_thread(self._get, key, allow_expired)

    async def set(self, key: str, payload: dict[str, Any], ttl_hours: float) -> None:
        await asyncio.to_thread(self._set, key, payload, ttl_hours)

    def _get(self, key: str, allow_expired: bool) -> CacheRead | None:
        with session_scope() as session:
            entry = CacheEntryRepository(session).get(key)
            if entry is None:
                record_cache_read("miss")
                logger.debug("Cache miss for %s", key)
                return None
            cached_at = as_utc(entry.cached_at)
            expired = self._clock.now() >= cached_at + timedelta(hours=entry.ttl_hours)
            payload = dict(entry.payload)

        if expired and not allow_expired:
            record_cache_read("miss")
            logger.debug("Cache entry %s expired at %s", key, cached_at)
            return None

        record_cache_read("stale" if expired else "fresh")
        return CacheRead(payload=payload, cached_at=cached_at, expired=expired)

    def _set(self, key: str, payload: dict[str, Any], ttl_hours: float) -> None:
        with session_scope() as session:
            CacheEntryRepository(session).put(
                key, payload, cached_at=self._clock.now(), ttl_hours=ttl_hours
            )
