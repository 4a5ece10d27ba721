"""Logging configuration for Hotel_Curator."""

from __future__ import annotations

import logging
import sys
from threading import Lock
from typing import Any, Final

from .config import get_settings

# Define log format with structured context placeholders.
LOG_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)s | %(name)s | "
    "component=%(component)s | run_id=%(run_id)s | "
    "correlation_id=%(correlation_id)s | vendor_path=%(vendor_path)s | "
    "status=%(status)s | duration_ms=%(duration_ms)s | stage=%(stage)s | %(message)s"
)

DEFAULT_CONTEXT: Final[dict[str, str]] = {
    "component": "-",
    "run_id": "-",
    "correlation_id": "-",
    "vendor_path": "-",
    "status": "-",
    "duration_ms": "-",
    "stage": "-",
}

_LOG_CONFIGURED = False
_CONFIG_LOCK: Final = Lock()


class ContextualFormatter(logging.Formatter):
    """Formatter that injects default structured context fields when absent."""

    def __init__(self, fmt: str, defaults: dict[str, str] | None = None) -> None:
        super().__init__(fmt)
        self._defaults = defaults or {}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self._defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


def _configure_root_logger() -> None:
    """Configure the root logger exactly once based on global settings."""

    global _LOG_CONFIGURED
    with _CONFIG_LOCK:
        if _LOG_CONFIGURED:
            return

        settings = get_settings()
        resolved_level = getattr(logging, settings.log_level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(resolved_level)

        formatter = ContextualFormatter(LOG_FORMAT, DEFAULT_CONTEXT)

        if not root_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(resolved_level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
        else:
            for handler in root_logger.handlers:
                handler.setFormatter(formatter)

        _LOG_CONFIGURED = True


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that lets per-call extras override defaults."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:  # type: ignore[override]
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logger(
    name: str,
    *,
    level: str | None = None,
    context: dict[str, Any] | None = None,
) -> logging.LoggerAdapter:
    """Return a logger configured with the global logging defaults.

    Args:
        name: Logger name to retrieve.
        level: Optional log level override (primarily for tests).
        context: Optional default structured context to include with every entry.

    Returns:
        LoggerAdapter injecting structured defaults for consistent formatting.
    """

    _configure_root_logger()
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    adapter_context: dict[str, Any] = dict(DEFAULT_CONTEXT)
    if context:
        adapter_context.update(context)

    return StructuredLoggerAdapter(logger, adapter_context)


def log_vendor_call(
    logger: logging.Logger | logging.LoggerAdapter,
    method: str,
    path: str,
    status: int | str | None,
    duration_ms: int,
    **extra_context: Any,
) -> None:
    """
    Log a single vendor HTTP call with structured context.

    Args:
        logger: Logger instance
        method: HTTP method used
        path: Vendor path requested
        status: HTTP status code, or an error code when no response arrived
        duration_ms: Round-trip duration in milliseconds
        **extra_context: Additional context to log
    """
    structured_context: dict[str, Any] = {
        "vendor_path": path,
        "status": status if status is not None else "-",
        "duration_ms": duration_ms,
        "correlation_id": extra_context.pop("correlation_id", None) or "-",
    }
    structured_context.update(extra_context)

    failed = not isinstance(status, int) or status >= 400
    suffix = f" | context={extra_context}" if extra_context else ""
    log_method = logger.warning if failed else logger.info
    log_method(f"Vendor {method.upper()} {path} -> {status}{suffix}", extra=structured_context)
