"""Custom exceptions for Hotel_Curator."""

from __future__ import annotations

from typing import Any


class CuratorError(Exception):
    """Base exception for all Hotel_Curator errors."""

    code = "curator_error"

    def as_dict(self) -> dict[str, Any]:
        """Return a serializable representation for API responses and run records."""

        return {"code": self.code, "message": str(self) or self.__class__.__name__}


class ConfigurationError(CuratorError):
    """Raised when configuration is invalid or missing."""

    code = "config_error"


class VendorError(CuratorError):
    """Raised when a vendor HTTP call fails."""

    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        upstream_ms: int | None = None,
        path: str | None = None,
        correlation_id: str | None = None,
        vendor_code: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.upstream_ms = upstream_ms
        self.path = path
        self.correlation_id = correlation_id
        self.vendor_code = vendor_code

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload["upstream_status"] = self.status
        payload["upstream_ms"] = self.upstream_ms
        if self.vendor_code is not None:
            payload["vendor_code"] = self.vendor_code
        return payload


class AuthenticationError(VendorError):
    """Raised when the vendor rejects the service credentials."""

    code = "auth_error"


class BadRequestError(VendorError):
    """Raised when the vendor rejects the request payload."""

    code = "bad_request"


class NotFoundError(VendorError):
    """Raised when the vendor resource does not exist."""

    code = "not_found"


class VendorTimeoutError(VendorError):
    """Raised when the vendor call times out."""

    code = "timeout"


class ServerError(VendorError):
    """Raised when the vendor is unavailable or returns a 5xx status."""

    code = "server_error"


class DecompressionError(CuratorError):
    """Raised when a compressed vendor stream cannot be decoded."""

    code = "decompression_error"


class CatalogParseError(CuratorError):
    """Raised when the catalog stream is not valid JSON."""

    code = "catalog_parse_error"


class SeedError(CuratorError):
    """Raised when a curation seeding run fails."""

    code = "seed_error"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        upstream_ms: int | None = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_ms = upstream_ms

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload["upstream_status"] = self.upstream_status
        payload["upstream_ms"] = self.upstream_ms
        return payload


class CatalogFetchError(SeedError):
    """Raised when the buffered catalog fetch fails."""

    code = "hotellist_fetch_failed"


class CatalogEmptyError(SeedError):
    """Raised when the vendor catalog contains no hotels."""

    code = "hotellist_empty"


class SeedTimeoutError(SeedError):
    """Raised when a buffered seeding run exceeds its wall-clock budget."""

    code = "seed_timeout"


_STATUS_ERRORS: dict[int, type[VendorError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    404: NotFoundError,
    408: VendorTimeoutError,
}


def classify_status(status: int | None, message: str, **context: Any) -> VendorError:
    """Return the typed vendor error for an HTTP status.

    Args:
        status: HTTP status reported by the vendor, or None when no response arrived.
        message: Human readable description.
        **context: Extra attributes forwarded to :class:`VendorError`.

    Returns:
        The most specific :class:`VendorError` subclass for the status.
    """

    if status is None or status >= 500:
        return ServerError(message, status=status, **context)
    error_cls = _STATUS_ERRORS.get(status, VendorError)
    return error_cls(message, status=status, **context)
