"""Search orchestration over the vendor gateway."""

from .orchestrator import SEARCH_PATH, SearchOrchestrator, build_search_body
from .rooms import normalize_room, normalize_rooms

__all__ = [
    "SEARCH_PATH",
    "SearchOrchestrator",
    "build_search_body",
    "normalize_room",
    "normalize_rooms",
]
