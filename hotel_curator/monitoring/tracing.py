"""Correlation-id propagation for vendor calls and API requests.

Correlation IDs live in a context variable so that every log line emitted
while serving one request (or one seed run) can be stitched together, even
across ``asyncio`` tasks spawned from that request.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id_context: ContextVar[str | None] = ContextVar("correlation_id", default=None)

CORRELATION_HEADER = "X-Correlation-ID"


def get_correlation_id() -> str | None:
    """
    Retrieve the active correlation ID from the current context.

    Returns:
        Active correlation ID or None if not set
    """
    return _correlation_id_context.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""

    _correlation_id_context.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the active correlation ID from the current context."""

    _correlation_id_context.set(None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def ensure_correlation_id(provided_id: str | None = None) -> str:
    """
    Ensure a correlation ID exists, creating one if necessary.

    Args:
        provided_id: Optional correlation ID to use

    Returns:
        The provided ID, existing context ID, or newly generated ID
    """
    if provided_id:
        set_correlation_id(provided_id)
        return provided_id

    existing = get_correlation_id()
    if existing:
        return existing

    new_id = generate_correlation_id()
    set_correlation_id(new_id)
    return new_id


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block, restoring the previous one after."""

    token = _correlation_id_context.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id_context.get() or ""
    finally:
        _correlation_id_context.reset(token)


def extract_correlation_id_from_headers(headers: Mapping[str, str]) -> str | None:
    """Extract correlation ID from HTTP headers (case-insensitive)."""

    header_candidates = ["x-correlation-id", "x-request-id", "correlation-id"]

    headers_lower = {k.lower(): v for k, v in headers.items()}
    for candidate in header_candidates:
        if candidate in headers_lower:
            return headers_lower[candidate]

    return None


__all__ = [
    "CORRELATION_HEADER",
    "clear_correlation_id",
    "correlation_scope",
    "ensure_correlation_id",
    "extract_correlation_id_from_headers",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
