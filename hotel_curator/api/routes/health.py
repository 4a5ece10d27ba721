"""Health check endpoint."""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...models.base import get_engine
from ...utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "HealthAPI"})
router = APIRouter()


def _database_status() -> dict[str, Any]:
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", exc, extra={"status": "error"})
        return {"status": "error", "detail": str(exc)}
    return {"status": "ok"}


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint including database reachability."""

    database = await asyncio.to_thread(_database_status)
    return {
        "status": "healthy" if database["status"] == "ok" else "unhealthy",
        "service": "hotel_curator",
        "database": database,
    }
