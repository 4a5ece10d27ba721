"""Curated hotel endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ...curation.reader import DEFAULT_LIMIT, MAX_LIMIT, CuratedHotelReader
from ...curation.runs import SeedTrigger, default_request
from ...schemas.curation import CuratedPage, SeedTriggerRequest
from ...utils.config import get_settings
from ...utils.logging import setup_logger
from ..dependencies import get_curated_reader, get_seed_trigger, require_api_key

logger = setup_logger(__name__, context={"component": "CuratedAPI"})
router = APIRouter(prefix="/hotels/curated", dependencies=[Depends(require_api_key)])


@router.get("", response_model=CuratedPage)
async def list_curated(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    cursor: str | None = None,
    reader: CuratedHotelReader = Depends(get_curated_reader),
) -> CuratedPage:
    """Return one page of curated hotels and the state of any seeding run."""

    return await reader.read(limit=limit, cursor=cursor)


@router.get("/debug")
async def curated_debug(
    reader: CuratedHotelReader = Depends(get_curated_reader),
) -> dict[str, Any]:
    return await reader.debug()


@router.post("/seed", status_code=202)
async def trigger_seed(
    body: SeedTriggerRequest | None = None,
    trigger: SeedTrigger = Depends(get_seed_trigger),
) -> dict[str, Any]:
    """Manually start a seed run."""

    body = body or SeedTriggerRequest()
    request = default_request(body.mode, get_settings(), countries=body.countries)
    outcome = await trigger.maybe_trigger(body.mode, request, reason="manual", force=body.force)
    logger.info(
        "Manual seed trigger: %s",
        outcome.reason,
        extra={"run_id": outcome.run_id or "-", "status": outcome.reason},
    )
    return {"triggered": outcome.triggered, "run_id": outcome.run_id, "reason": outcome.reason}
