"""Schemas package initialization."""
from .curation import (
    BufferedSeedRequest,
    CuratedPage,
    SeedFilters,
    SeedRunView,
    SeedTriggerRequest,
    StreamSeedRequest,
)
from .hotels import CatalogRecord, CuratedHotelRecord
from .search import HotelOffer, Room, SearchAttempt, SearchRequest, SearchResult

__all__ = [
    "BufferedSeedRequest",
    "CatalogRecord",
    "CuratedHotelRecord",
    "CuratedPage",
    "HotelOffer",
    "Room",
    "SearchAttempt",
    "SearchRequest",
    "SearchResult",
    "SeedFilters",
    "SeedRunView",
    "SeedTriggerRequest",
    "StreamSeedRequest",
]
