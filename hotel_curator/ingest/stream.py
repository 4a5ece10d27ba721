"""Streaming catalog ingestion into the curated store.

The vendor catalog is read as a byte stream, tokenized record by record and
filtered through per-country and overall caps. Accepted records are
committed in two tiers: a small first batch as soon as it fills, then larger
batches. The run ends when the stream ends, when the overall cap is reached
or when the hard timeout fires; every ending flushes what is pending and
returns a result rather than raising.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, Sequence

import httpx
from pydantic import ValidationError

from ..exceptions import DecompressionError
from ..models.repository import UpsertCounts
from ..monitoring.metrics import record_catalog_record
from ..schemas.curation import StreamSeedRequest
from ..schemas.hotels import CatalogRecord, CuratedHotelRecord
from ..utils.clock import Clock, SystemClock
from ..utils.logging import setup_logger
from ..vendor.gateway import VendorGateway
from ..vendor.static_data import HOTEL_LIST_PATH
from .tokenizer import CatalogTokenizer

logger = setup_logger(__name__, context={"component": "CatalogStream"})

DEFAULT_SOURCE = "wanderbeds"


class CuratedWriter(Protocol):
    async def upsert(self, records: Sequence[CuratedHotelRecord]) -> UpsertCounts: ...


@dataclass(slots=True)
class StreamProgress:
    """Snapshot handed to the progress callback at each stage transition."""

    stage: str
    processed: int
    committed: int
    per_group_counts: dict[str, int]


ProgressCallback = Callable[[StreamProgress], Awaitable[None]]


@dataclass(slots=True)
class StreamResult:
    """Outcome of one streaming ingestion pass."""

    seeded: int
    per_group_counts: dict[str, int]
    aborted_early: bool
    records_seen: int
    elapsed_ms: int
    first_batch_ms: int | None = None
    abort_reason: str | None = None
    inserted: int = 0
    updated: int = 0


@dataclass(slots=True)
class _RunState:
    started: float
    per_group_counts: dict[str, int] = field(default_factory=dict)
    pending: list[CuratedHotelRecord] = field(default_factory=list)
    processed: int = 0
    records_seen: int = 0
    committed: int = 0
    first_batch_done: bool = False
    first_batch_ms: int | None = None
    aborted_early: bool = False
    abort_reason: str | None = None
    counts: UpsertCounts = field(default_factory=UpsertCounts)
    inflight: tuple[asyncio.Future[UpsertCounts], int] | None = None

    def abort(self, reason: str) -> None:
        self.aborted_early = True
        if self.abort_reason is None:
            self.abort_reason = reason

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


def safety_timeout_seconds(hard_timeout_seconds: float) -> float:
    """Deadline for the whole consume step, ending slightly ahead of the hard timeout so the final flush lands inside it."""

    margin = min(1.0, hard_timeout_seconds * 0.05)
    return max(hard_timeout_seconds - margin, 0.001)


class CatalogStreamIngestor:
    """Streams the vendor catalog into the curated store under caps and a hard timeout."""

    def __init__(
        self,
        gateway: VendorGateway,
        writer: CuratedWriter,
        *,
        clock: Clock | None = None,
        source: str = DEFAULT_SOURCE,
        catalog_path: str = HOTEL_LIST_PATH,
    ) -> None:
        self._gateway = gateway
        self._writer = writer
        self._clock = clock or SystemClock()
        self._source = source
        self._catalog_path = catalog_path

    async def stream(
        self,
        options: StreamSeedRequest,
        on_progress: ProgressCallback | None = None,
    ) -> StreamResult:
        """Run one ingestion pass.

        Args:
            options: Allowed groups, caps, hard timeout and batch sizes.
            on_progress: Optional coroutine called at each stage transition.

        Returns:
            :class:`StreamResult`; ``aborted_early`` is set when the cap or a
            timeout ended the pass before the stream did.

        Raises:
            DecompressionError: The body could not be decoded.
            CatalogParseError: The body is not valid JSON.
            VendorError: The catalog request itself failed.
        """

        run = _RunState(started=time.monotonic())
        seeded_at = self._clock.now()
        hard_seconds = options.hard_timeout_ms / 1000
        await self._emit(on_progress, "connecting", run)
        try:
            await asyncio.wait_for(
                self._consume(options, run, seeded_at, on_progress),
                timeout=safety_timeout_seconds(hard_seconds),
            )
        except asyncio.TimeoutError:
            run.abort("hard_timeout")
            logger.warning(
                "Catalog stream hit its time budget after %d records",
                run.records_seen,
                extra={"stage": "streaming", "status": "timeout", "duration_ms": run.elapsed_ms()},
            )

        await self._flush(run, options, on_progress, final=True)
        await self._emit(on_progress, "done", run)

        logger.info(
            "Catalog stream finished: %d seeded from %d records%s",
            run.processed,
            run.records_seen,
            f" (stopped: {run.abort_reason})" if run.aborted_early else "",
            extra={"stage": "done", "status": "ok", "duration_ms": run.elapsed_ms()},
        )
        return StreamResult(
            seeded=run.processed,
            per_group_counts=dict(run.per_group_counts),
            aborted_early=run.aborted_early,
            records_seen=run.records_seen,
            elapsed_ms=run.elapsed_ms(),
            first_batch_ms=run.first_batch_ms,
            abort_reason=run.abort_reason,
            inserted=run.counts.inserted,
            updated=run.counts.updated,
        )

    async def _consume(
        self,
        options: StreamSeedRequest,
        run: _RunState,
        seeded_at: datetime,
        on_progress: ProgressCallback | None,
    ) -> None:
        async with self._gateway.stream(
            "GET", self._catalog_path, timeout_ms=options.hard_timeout_ms
        ) as response:
            encoding = response.headers.get("content-encoding", "identity")
            logger.info(
                "Catalog stream opened with content-encoding %s",
                encoding,
                extra={"stage": "streaming", "status": response.status_code},
            )
            await self._emit(on_progress, "streaming", run)

            tokenizer = CatalogTokenizer()
            try:
                async for chunk in response.aiter_bytes():
                    for raw in tokenizer.feed(chunk):
                        if await self._handle(raw, options, run, seeded_at, on_progress):
                            return
                    if tokenizer.done:
                        return
            except httpx.DecodingError as exc:
                raise DecompressionError(
                    f"Failed to decode catalog stream with content-encoding '{encoding}': {exc}"
                ) from exc

            for raw in tokenizer.close():
                if await self._handle(raw, options, run, seeded_at, on_progress):
                    return

    async def _handle(
        self,
        raw: dict[str, Any],
        options: StreamSeedRequest,
        run: _RunState,
        seeded_at: datetime,
        on_progress: ProgressCallback | None,
    ) -> bool:
        """Apply the acceptance predicate to one record. Returns True once the overall cap is hit."""

        run.records_seen += 1
        if self._accept(raw, options, run, seeded_at):
            await self._flush(run, options, on_progress)
        if run.processed >= options.overall_limit:
            run.abort("overall_limit")
            return True
        return False

    def _accept(
        self,
        raw: dict[str, Any],
        options: StreamSeedRequest,
        run: _RunState,
        seeded_at: datetime,
    ) -> bool:
        try:
            record = CatalogRecord.model_validate(raw)
        except ValidationError:
            record_catalog_record("invalid")
            return False

        group = record.country
        if (
            not record.hotel_id
            or group not in options.allowed_groups
            or run.per_group_counts.get(group, 0) >= options.per_group_limit
            or run.processed >= options.overall_limit
        ):
            record_catalog_record("rejected")
            return False

        run.per_group_counts[group] = run.per_group_counts.get(group, 0) + 1
        run.processed += 1
        run.pending.append(record.to_curated(source=self._source, seeded_at=seeded_at))
        record_catalog_record("accepted")
        return True

    async def _flush(
        self,
        run: _RunState,
        options: StreamSeedRequest,
        on_progress: ProgressCallback | None,
        *,
        final: bool = False,
    ) -> None:
        if final:
            await self._settle_inflight(run)
            if run.pending:
                await self._commit(run, len(run.pending))
                if not run.first_batch_done:
                    run.first_batch_done = True
                    run.first_batch_ms = run.elapsed_ms()
            return

        if not run.first_batch_done:
            if len(run.pending) >= options.first_batch_size:
                await self._commit(run, len(run.pending))
                run.first_batch_done = True
                run.first_batch_ms = run.elapsed_ms()
                logger.info(
                    "First batch of %d committed",
                    run.committed,
                    extra={"stage": "first_batch_committed", "duration_ms": run.first_batch_ms},
                )
                await self._emit(on_progress, "first_batch_committed", run)
        elif len(run.pending) >= options.batch_size:
            await self._commit(run, len(run.pending))
            await self._emit(on_progress, "batch_committed", run)

    async def _commit(self, run: _RunState, size: int) -> None:
        # Shielded so a timeout cancelling the consumer cannot abandon a write half way;
        # the final flush settles it before writing anything else.
        future = asyncio.ensure_future(self._writer.upsert(list(run.pending[:size])))
        run.inflight = (future, size)
        await asyncio.shield(future)
        await self._settle_inflight(run)

    async def _settle_inflight(self, run: _RunState) -> None:
        if run.inflight is None:
            return
        future, size = run.inflight
        counts = await future
        run.inflight = None
        del run.pending[:size]
        run.committed += size
        run.counts = run.counts + counts

    async def _emit(
        self,
        on_progress: ProgressCallback | None,
        stage: str,
        run: _RunState,
    ) -> None:
        if on_progress is None:
            return
        await on_progress(
            StreamProgress(
                stage=stage,
                processed=run.processed,
                committed=run.committed,
                per_group_counts=dict(run.per_group_counts),
            )
        )
