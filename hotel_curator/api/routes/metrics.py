"""Prometheus metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ...curation.store import CuratedHotelStore
from ...monitoring.metrics import set_curated_total

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose Prometheus metrics, refreshing the curated collection size first."""

    set_curated_total(await CuratedHotelStore().count())
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
