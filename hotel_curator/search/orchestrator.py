"""Hotel search with a sequential nationality-code fallback sweep."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any

from ..exceptions import VendorError
from ..models.repository import SearchLogCreate, persist_search_log
from ..monitoring.metrics import record_search_attempt, record_search_fallback_hit
from ..monitoring.tracing import get_correlation_id
from ..schemas.search import SearchAttempt, SearchResult
from ..utils.config import SearchSettings, get_settings
from ..utils.logging import setup_logger
from ..vendor.gateway import TIMEOUT_HINT_FIELD, VendorGateway
from ..vendor.shapes import ParsedSearch, parse_search_payload
from .rooms import normalize_rooms

logger = setup_logger(__name__, context={"component": "SearchOrchestrator"})

SEARCH_PATH = "/hotel/search"


def _format_date(value: date | str) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


def _vendor_hotel_id(value: Any) -> int | str:
    text = str(value).strip()
    return int(text) if text.isdigit() else text


def build_search_body(
    hotel_ids: Sequence[Any],
    checkin: date | str,
    checkout: date | str,
    rooms: Sequence[Mapping[str, Any]] | None,
    nationality: str,
    *,
    timeout_hint: str,
) -> dict[str, Any]:
    """Build the vendor search body, carrying the timeout hint under the vendor's field name."""

    return {
        "hotels": [_vendor_hotel_id(hotel_id) for hotel_id in hotel_ids],
        "checkin": _format_date(checkin),
        "checkout": _format_date(checkout),
        "rooms": normalize_rooms(rooms),
        "nationality": nationality,
        TIMEOUT_HINT_FIELD: timeout_hint,
    }


def _payload_error_code(payload: Mapping[str, Any]) -> str | int | None:
    error = payload.get("error")
    if isinstance(error, Mapping):
        return error.get("code")
    return None


class SearchOrchestrator:
    """Runs vendor searches, optionally sweeping fallback nationality codes.

    Attempts are strictly sequential. The sweep stops on the first attempt
    with results or on any error other than "no results", which is re-raised.
    """

    def __init__(
        self,
        gateway: VendorGateway,
        *,
        settings: SearchSettings | None = None,
        timeout_ms: int | None = None,
        log_writer: Callable[[SearchLogCreate], Any] | None = persist_search_log,
    ) -> None:
        self._gateway = gateway
        self._settings = settings or get_settings().search
        self._timeout_ms = timeout_ms or gateway.settings.search_timeout_ms
        self._log_writer = log_writer
        self._pending_logs: set[asyncio.Task[Any]] = set()

    def nationality_sequence(self, requested: str, sweep_enabled: bool) -> list[str]:
        codes = [requested]
        if sweep_enabled:
            codes.extend(self._settings.fallback_nationalities)
        return list(dict.fromkeys(code.strip().upper() for code in codes if code.strip()))

    async def search(
        self,
        hotel_ids: Sequence[Any],
        checkin: date | str,
        checkout: date | str,
        rooms: Sequence[Mapping[str, Any]] | None,
        nationality: str,
        *,
        sweep_enabled: bool | None = None,
        timeout: str | None = None,
    ) -> SearchResult:
        requested = nationality.strip().upper()
        sweep = self._settings.sweep_enabled if sweep_enabled is None else sweep_enabled
        codes = self.nationality_sequence(requested, sweep)
        body = build_search_body(
            hotel_ids,
            checkin,
            checkout,
            rooms,
            requested,
            timeout_hint=timeout or self._settings.timeout_hint,
        )

        attempts: list[SearchAttempt] = []
        tried: list[str] = []
        parsed = ParsedSearch()
        used: str | None = None

        for code in codes:
            tried.append(code)
            started = time.perf_counter()
            try:
                payload, meta = await self._gateway.request_with_meta(
                    "POST",
                    SEARCH_PATH,
                    body={**body, "nationality": code},
                    timeout_ms=self._timeout_ms,
                    safe=True,
                    retries=self._settings.retries,
                )
            except VendorError as exc:
                attempts.append(
                    SearchAttempt(
                        nationality_code=code,
                        upstream_status=exc.status,
                        error_code=exc.code,
                        result_count=0,
                        elapsed_ms=exc.upstream_ms or int((time.perf_counter() - started) * 1000),
                    )
                )
                record_search_attempt("error")
                logger.warning(
                    "Search attempt with nationality %s failed with %s; stopping sweep",
                    code,
                    exc.code,
                    extra={"status": exc.code},
                )
                self._persist(body, attempts, requested, None, False, 0, exc.code)
                raise

            parsed = parse_search_payload(payload)
            used = code
            attempts.append(
                SearchAttempt(
                    nationality_code=code,
                    upstream_status=meta.status,
                    error_code=_payload_error_code(payload),
                    result_count=parsed.count if parsed.hotels else 0,
                    elapsed_ms=meta.elapsed_ms,
                )
            )
            if parsed.hotels:
                record_search_attempt("results")
                break
            record_search_attempt("no_results")
            logger.info("No results for nationality %s", code, extra={"status": "no_results"})

        has_results = bool(parsed.hotels)
        fallback_hit = has_results and used != requested
        if fallback_hit:
            record_search_fallback_hit()

        result = SearchResult(
            token=parsed.token,
            count=parsed.count if has_results else 0,
            hotels=parsed.hotels,
            nationality_requested=requested,
            nationality_used=used,
            fallback_tried=tried,
            fallback_hit=fallback_hit,
            attempts=attempts,
        )
        self._persist(body, attempts, requested, used, fallback_hit, len(parsed.hotels), None)
        return result

    def _persist(
        self,
        body: dict[str, Any],
        attempts: list[SearchAttempt],
        requested: str,
        used: str | None,
        fallback_hit: bool,
        result_count: int,
        error_code: str | None,
    ) -> None:
        """Write the search summary from a background task without delaying the caller."""

        if self._log_writer is None:
            return
        entry = SearchLogCreate(
            nationality_requested=requested,
            request={key: value for key, value in body.items() if key != "nationality"},
            attempts=[attempt.model_dump() for attempt in attempts],
            nationality_used=used,
            fallback_hit=fallback_hit,
            result_count=result_count,
            error_code=error_code,
            correlation_id=get_correlation_id(),
        )
        task = asyncio.get_running_loop().create_task(asyncio.to_thread(self._log_writer, entry))
        self._pending_logs.add(task)
        task.add_done_callback(self._log_write_done)

    def _log_write_done(self, task: asyncio.Task[Any]) -> None:
        self._pending_logs.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to persist search summary: %s", exc, extra={"status": "error"})

    async def drain(self) -> None:
        """Wait for outstanding summary writes (used at shutdown and in tests)."""

        if self._pending_logs:
            await asyncio.gather(*self._pending_logs, return_exceptions=True)
