"""Repository helpers for persistence models."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..schemas.hotels import CuratedHotelRecord
from .base import session_scope
from .cache_entry import CacheEntry
from .curated_hotel import CuratedHotel
from .search_log import SearchLog
from .seed_run import SeedLease, SeedRun

ACTIVE_RUN_STATUSES = ("queued", "running")

# Dialects with INSERT ... ON CONFLICT DO NOTHING; others fall back to a plain add.
_CONFLICT_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


@dataclass(slots=True)
class UpsertCounts:
    """Number of curated rows created versus merged by one upsert call."""

    inserted: int = 0
    updated: int = 0

    def __add__(self, other: UpsertCounts) -> UpsertCounts:
        return UpsertCounts(self.inserted + other.inserted, self.updated + other.updated)


@dataclass(slots=True)
class SearchLogCreate:
    """Value object capturing the fields persisted for one search."""

    nationality_requested: str
    request: dict[str, Any]
    attempts: list[dict[str, Any]] = field(default_factory=list)
    nationality_used: str | None = None
    fallback_hit: bool = False
    result_count: int = 0
    error_code: str | None = None
    correlation_id: str | None = None


class CacheEntryRepository:
    """Data access helpers for :class:`CacheEntry`."""

    def __init__(self, session: Session):
        self._session = session

    def get(self, key: str) -> CacheEntry | None:
        return self._session.get(CacheEntry, key)

    def put(self, key: str, payload: dict[str, Any], *, cached_at: datetime, ttl_hours: float) -> None:
        """Write or overwrite the entry; the latest writer wins."""

        entry = self._session.get(CacheEntry, key)
        if entry is None:
            self._session.add(
                CacheEntry(key=key, payload=payload, cached_at=cached_at, ttl_hours=ttl_hours)
            )
        else:
            entry.payload = payload
            entry.cached_at = cached_at
            entry.ttl_hours = ttl_hours
        self._session.flush()


class CuratedHotelRepository:
    """Data access helpers for :class:`CuratedHotel`."""

    def __init__(self, session: Session):
        self._session = session

    def upsert_many(self, records: Sequence[CuratedHotelRecord], *, now: datetime) -> UpsertCounts:
        """Merge records into the collection keyed by hotel id.

        Fields a record leaves unset keep their stored values. Ids that
        already exist (or repeat within the batch) count as updated. New ids
        are written with a conflict-ignoring insert, so an id another writer
        committed first is merged into instead of failing the batch.
        """

        counts = UpsertCounts()
        if not records:
            return counts

        existing = self._load_existing({record.hotel_id for record in records})

        for record in records:
            values = record.merge_values()
            row = existing.get(record.hotel_id)
            if row is None:
                inserted, row = self._insert_if_absent(values, now)
                existing[record.hotel_id] = row
                if inserted:
                    counts.inserted += 1
                    continue
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = now
            counts.updated += 1

        self._session.flush()
        return counts

    def _load_existing(self, hotel_ids: set[str]) -> dict[str, CuratedHotel]:
        rows = self._session.scalars(select(CuratedHotel).where(CuratedHotel.hotel_id.in_(hotel_ids)))
        return {row.hotel_id: row for row in rows}

    def _insert_if_absent(self, values: dict[str, Any], now: datetime) -> tuple[bool, CuratedHotel]:
        """Insert one row unless the id exists. Returns whether this call inserted it, and the row."""

        row_values = {"seeded_at": now, **values, "updated_at": now}
        build_insert = _CONFLICT_INSERTS.get(self._session.get_bind().dialect.name)
        if build_insert is None:
            row = CuratedHotel(**row_values)
            self._session.add(row)
            return True, row

        statement = build_insert(CuratedHotel).values(**row_values).on_conflict_do_nothing(
            index_elements=[CuratedHotel.hotel_id]
        )
        inserted = bool(self._session.execute(statement).rowcount)
        row = self._session.scalars(
            select(CuratedHotel).where(CuratedHotel.hotel_id == values["hotel_id"])
        ).one()
        return inserted, row

    def ids_missing_hero_image(self, hotel_ids: Iterable[str]) -> list[str]:
        """Return the ids among ``hotel_ids`` whose stored row has no hero image."""

        wanted = list(dict.fromkeys(hotel_ids))
        if not wanted:
            return []
        enriched = set(
            self._session.scalars(
                select(CuratedHotel.hotel_id).where(
                    CuratedHotel.hotel_id.in_(wanted),
                    CuratedHotel.hero_image_url.is_not(None),
                )
            )
        )
        return [hotel_id for hotel_id in wanted if hotel_id not in enriched]

    def page(self, *, limit: int, cursor: str | None = None) -> list[CuratedHotel]:
        """Return up to ``limit`` rows ordered by country then hotel id, after ``cursor``."""

        stmt = select(CuratedHotel).order_by(CuratedHotel.country, CuratedHotel.hotel_id)
        if cursor:
            anchor = self._session.get(CuratedHotel, cursor)
            if anchor is not None:
                stmt = stmt.where(
                    or_(
                        CuratedHotel.country > anchor.country,
                        and_(
                            CuratedHotel.country == anchor.country,
                            CuratedHotel.hotel_id > anchor.hotel_id,
                        ),
                    )
                )
        return list(self._session.scalars(stmt.limit(limit)))

    def count(self) -> int:
        return int(self._session.scalar(select(func.count()).select_from(CuratedHotel)) or 0)


class SeedRunRepository:
    """Data access helpers for :class:`SeedRun`."""

    def __init__(self, session: Session):
        self._session = session

    def create(
        self,
        run_id: str,
        *,
        mode: str,
        request: dict[str, Any],
        now: datetime,
    ) -> SeedRun:
        run = SeedRun(
            id=run_id,
            mode=mode,
            status="queued",
            stage="queued",
            processed=0,
            per_group_counts={},
            seeded_count=0,
            request=request,
            created_at=now,
            updated_at=now,
        )
        self._session.add(run)
        self._session.flush()
        return run

    def get(self, run_id: str) -> SeedRun | None:
        return self._session.get(SeedRun, run_id)

    def update(self, run_id: str, *, now: datetime, **fields: Any) -> SeedRun | None:
        run = self._session.get(SeedRun, run_id)
        if run is None:
            return None
        for key, value in fields.items():
            setattr(run, key, value)
        run.updated_at = now
        self._session.flush()
        return run

    def find_active(self, *, updated_after: datetime | None = None) -> SeedRun | None:
        """Return the newest queued or running run, ignoring runs idle since ``updated_after``."""

        stmt = select(SeedRun).where(SeedRun.status.in_(ACTIVE_RUN_STATUSES))
        if updated_after is not None:
            stmt = stmt.where(SeedRun.updated_at > updated_after)
        return self._session.scalars(stmt.order_by(SeedRun.created_at.desc()).limit(1)).first()

    def latest(self) -> SeedRun | None:
        return self._session.scalars(
            select(SeedRun).order_by(SeedRun.created_at.desc()).limit(1)
        ).first()


class SeedLeaseRepository:
    """Conditional-write lease used to single-flight seed triggers across processes."""

    def __init__(self, session: Session):
        self._session = session

    def try_acquire(self, name: str, *, holder: str, now: datetime, ttl_seconds: float) -> bool:
        """Take the lease if it is free or expired. Returns False while another holder owns it."""

        expires_at = now + timedelta(seconds=ttl_seconds)
        result = self._session.execute(
            update(SeedLease)
            .where(SeedLease.name == name, SeedLease.expires_at <= now)
            .values(holder=holder, acquired_at=now, expires_at=expires_at)
        )
        if result.rowcount:
            return True

        if self._session.get(SeedLease, name) is not None:
            return False

        self._session.add(
            SeedLease(name=name, holder=holder, acquired_at=now, expires_at=expires_at)
        )
        try:
            self._session.flush()
        except IntegrityError:
            # Another process inserted the row between our read and write.
            self._session.rollback()
            return False
        return True


class SearchLogRepository:
    """Data access helpers for :class:`SearchLog`."""

    def __init__(self, session: Session):
        self._session = session

    def create(self, entry: SearchLogCreate) -> SearchLog:
        log = SearchLog(
            correlation_id=entry.correlation_id,
            request=entry.request,
            attempts=entry.attempts,
            nationality_requested=entry.nationality_requested,
            nationality_used=entry.nationality_used,
            fallback_hit=entry.fallback_hit,
            result_count=entry.result_count,
            error_code=entry.error_code,
        )
        self._session.add(log)
        self._session.flush()
        return log


def persist_search_log(entry: SearchLogCreate) -> SearchLog:
    """Create a search log row using a managed database session."""

    with session_scope() as session:
        return SearchLogRepository(session).create(entry)
