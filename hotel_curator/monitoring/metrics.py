"""Prometheus metrics definitions for Hotel_Curator."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

VENDOR_REQUESTS = Counter(
    "vendor_requests_total",
    "Total vendor HTTP calls by path and outcome.",
    labelnames=("path", "outcome"),
)

VENDOR_REQUEST_DURATION = Histogram(
    "vendor_request_duration_seconds",
    "Distribution of vendor HTTP call durations in seconds.",
    labelnames=("path",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60, 120),
)

VENDOR_RETRIES = Counter(
    "vendor_retries_total",
    "Total retry sleeps scheduled for safe vendor calls.",
    labelnames=("path",),
)

CACHE_READS = Counter(
    "cache_reads_total",
    "Cache lookups grouped by result (fresh, stale, miss).",
    labelnames=("result",),
)

SEARCH_ATTEMPTS = Counter(
    "search_attempts_total",
    "Search attempts grouped by outcome (results, no_results, error).",
    labelnames=("outcome",),
)

SEARCH_FALLBACK_HITS = Counter(
    "search_fallback_hits_total",
    "Searches whose results came from a fallback nationality code.",
)

CATALOG_RECORDS = Counter(
    "catalog_records_total",
    "Streamed catalog records grouped by acceptance decision.",
    labelnames=("decision",),
)

CURATED_WRITES = Counter(
    "curated_writes_total",
    "Curated hotel upserts grouped by kind (inserted, updated).",
    labelnames=("kind",),
)

SEED_RUNS = Counter(
    "seed_runs_total",
    "Curation seed runs grouped by mode and terminal status.",
    labelnames=("mode", "status"),
)

SEED_RUN_DURATION = Histogram(
    "seed_run_duration_seconds",
    "Distribution of curation seed run durations in seconds.",
    labelnames=("mode",),
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)

CURATED_HOTELS = Gauge(
    "curated_hotels",
    "Rows currently in the curated hotel collection, sampled at scrape time.",
)


def record_vendor_request(path: str, outcome: str, duration_seconds: float) -> None:
    """Count a vendor call and observe its latency."""

    VENDOR_REQUESTS.labels(path=path, outcome=outcome).inc()
    VENDOR_REQUEST_DURATION.labels(path=path).observe(max(duration_seconds, 0.0))


def record_vendor_retry(path: str) -> None:
    VENDOR_RETRIES.labels(path=path).inc()


def record_cache_read(result: str) -> None:
    """Increment the cache read counter for ``fresh``, ``stale`` or ``miss``."""

    CACHE_READS.labels(result=result).inc()


def record_search_attempt(outcome: str) -> None:
    SEARCH_ATTEMPTS.labels(outcome=outcome).inc()


def record_search_fallback_hit() -> None:
    SEARCH_FALLBACK_HITS.inc()


def record_catalog_record(decision: str) -> None:
    CATALOG_RECORDS.labels(decision=decision).inc()


def record_curated_writes(inserted: int, updated: int) -> None:
    """
    Record the outcome of one curated upsert batch.

    Args:
        inserted: Number of new hotel ids written
        updated: Number of existing hotel ids merged
    """
    if inserted:
        CURATED_WRITES.labels(kind="inserted").inc(inserted)
    if updated:
        CURATED_WRITES.labels(kind="updated").inc(updated)


def record_seed_run(mode: str, status: str, duration_seconds: float) -> None:
    """Record the terminal state and duration of a seed run."""

    SEED_RUNS.labels(mode=mode, status=status).inc()
    SEED_RUN_DURATION.labels(mode=mode).observe(max(duration_seconds, 0.0))


def set_curated_total(count: int) -> None:
    CURATED_HOTELS.set(count)
