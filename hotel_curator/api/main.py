"""FastAPI application for the Hotel_Curator service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..exceptions import (
    BadRequestError,
    CuratorError,
    NotFoundError,
    VendorError,
    VendorTimeoutError,
)
from ..monitoring.tracing import (
    CORRELATION_HEADER,
    correlation_scope,
    extract_correlation_id_from_headers,
)
from ..utils.config import ensure_runtime_configuration, get_settings
from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "FastAPI"})


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """Application lifespan context manager for startup/shutdown."""
    # Startup
    ensure_runtime_configuration(get_settings())
    logger.info("Hotel_Curator API starting up...")
    yield
    # Shutdown
    logger.info("Hotel_Curator API shutting down...")


app = FastAPI(
    title="Hotel_Curator API",
    description="Vendor hotel search and curated hotel collection service",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def correlation_middleware(request: Request, call_next):  # type: ignore
    """Bind the inbound (or a fresh) correlation ID for the request and echo it back."""

    with correlation_scope(extract_correlation_id_from_headers(request.headers)) as correlation_id:
        response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


def _status_for(exc: CuratorError) -> int:
    if isinstance(exc, VendorTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, BadRequestError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, VendorError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(CuratorError)
async def curator_exception_handler(request: Request, exc: CuratorError) -> JSONResponse:
    """Handle typed Hotel_Curator exceptions."""
    status_code = _status_for(exc)
    logger.error(
        "CuratorError: %s",
        exc,
        extra={"vendor_path": request.url.path, "status": exc.code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", **exc.as_dict()},
    )


# Import routers
from .routes import curated, health, metrics, search  # noqa: E402

app.include_router(health.router, tags=["health"])
app.include_router(curated.router, prefix="/api/v1", tags=["curated"])
app.include_router(search.router, prefix="/api/v1", tags=["search"])
app.include_router(metrics.router, tags=["monitoring"])
