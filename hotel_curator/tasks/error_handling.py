"""Structured error reports for failed Celery seeding tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..exceptions import (
    AuthenticationError,
    CatalogEmptyError,
    CatalogParseError,
    ConfigurationError,
    CuratorError,
    DecompressionError,
    SeedTimeoutError,
    ServerError,
    VendorError,
    VendorTimeoutError,
)


@dataclass(slots=True)
class TaskErrorReport:
    """Structured payload describing a failed Celery task."""

    task: str
    run_id: str | None
    correlation_id: str | None
    error_type: str
    code: str
    message: str
    classification: str
    retryable: bool
    timestamp: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "task": self.task,
            "run_id": self.run_id,
            "correlation_id": self.correlation_id,
            "error_type": self.error_type,
            "code": self.code,
            "message": self.message,
            "classification": self.classification,
            "retryable": self.retryable,
            "timestamp": self.timestamp,
        }
        if self.details:
            payload["details"] = self.details
        return payload


def build_error_report(
    exc: Exception,
    *,
    task: str,
    run_id: str | None = None,
    correlation_id: str | None = None,
    extra_details: dict[str, Any] | None = None,
) -> TaskErrorReport:
    """Construct a :class:`TaskErrorReport` describing the supplied exception."""

    classification, retryable = _classify_exception(exc)
    details: dict[str, Any] = {"exception_module": exc.__class__.__module__}
    if isinstance(exc, CuratorError):
        details.update({k: v for k, v in exc.as_dict().items() if k not in ("code", "message")})
    if extra_details:
        details.update(extra_details)

    return TaskErrorReport(
        task=task,
        run_id=run_id,
        correlation_id=correlation_id,
        error_type=exc.__class__.__name__,
        code=getattr(exc, "code", "internal_error"),
        message=str(exc) or exc.__class__.__name__,
        classification=classification,
        retryable=retryable,
        timestamp=datetime.now(timezone.utc).isoformat(),
        details=details,
    )


def _classify_exception(exc: Exception) -> tuple[str, bool]:
    """Return a tuple of (classification, retryable) for a given exception."""

    if isinstance(exc, ConfigurationError):
        return "configuration", False
    if isinstance(exc, AuthenticationError):
        return "authentication", False
    if isinstance(exc, VendorTimeoutError | ServerError):
        return "upstream_unavailable", True
    if isinstance(exc, VendorError):
        return "upstream", False
    if isinstance(exc, DecompressionError | CatalogParseError):
        return "catalog_format", False
    if isinstance(exc, CatalogEmptyError):
        return "catalog_empty", True
    if isinstance(exc, SeedTimeoutError):
        return "timeout", True
    if isinstance(exc, CuratorError):
        return "application", False
    return "unexpected", False
