"""Hotel search endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...schemas.search import SearchRequest, SearchResult
from ...search.orchestrator import SearchOrchestrator
from ..dependencies import get_search_orchestrator, require_api_key

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/hotels/search", response_model=SearchResult)
async def search_hotels(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> SearchResult:
    """Search availability, sweeping fallback nationalities when enabled.

    Vendor failures surface through the application error handler.
    """

    return await orchestrator.search(
        request.hotel_ids,
        request.checkin,
        request.checkout,
        request.rooms,
        request.nationality,
        sweep_enabled=request.sweep,
        timeout=request.timeout,
    )
