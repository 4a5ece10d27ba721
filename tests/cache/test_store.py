"""Tests for the TTL cache over the cache_entries table."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from hotel_curator.cache.store import CacheStore
from hotel_curator.utils.clock import FrozenClock


def _cache_reads(result: str) -> float:
    return REGISTRY.get_sample_value("cache_reads_total", {"result": result}) or 0.0


@pytest.mark.asyncio
async def test_missing_key_is_a_miss() -> None:
    before = _cache_reads("miss")

    assert await CacheStore().get("static/nothing") is None
    assert _cache_reads("miss") == pytest.approx(before + 1)


@pytest.mark.asyncio
async def test_entry_is_fresh_until_ttl_elapses(clock: FrozenClock) -> None:
    store = CacheStore(clock=clock)
    await store.set("static/countries", {"countries": ["AE"]}, ttl_hours=1)

    clock.advance(minutes=59)
    hit = await store.get("static/countries")
    assert hit is not None
    assert hit.expired is False
    assert hit.payload == {"countries": ["AE"]}

    clock.advance(minutes=1)
    assert await store.get("static/countries") is None


@pytest.mark.asyncio
async def test_expired_entry_returned_only_when_allowed(clock: FrozenClock) -> None:
    store = CacheStore(clock=clock)
    await store.set("static/roomtypes", {"roomtypes": [1, 2]}, ttl_hours=2)
    clock.advance(hours=3)

    stale = await store.get("static/roomtypes", allow_expired=True)

    assert stale is not None
    assert stale.expired is True
    tagged = stale.as_stale()
    assert tagged["stale"] is True
    assert tagged["source"] == "cache"
    assert tagged["cached_at"].startswith("2026-10-19T12:00:00")
    assert tagged["roomtypes"] == [1, 2]


@pytest.mark.asyncio
async def test_latest_write_wins(clock: FrozenClock) -> None:
    store = CacheStore(clock=clock)
    await store.set("static/mealtypes", {"v": 1}, ttl_hours=1)
    clock.advance(minutes=30)
    await store.set("static/mealtypes", {"v": 2}, ttl_hours=1)
    clock.advance(minutes=45)

    hit = await store.get("static/mealtypes")

    assert hit is not None
    assert hit.payload == {"v": 2}
