"""Curated hotel seeding, run tracking and reads."""

from .reader import CuratedHotelReader, clamp_limit
from .runs import (
    LEASE_NAME,
    SeedRunTracker,
    SeedTrigger,
    TriggerResult,
    default_request,
    execute_seed_run,
)
from .sampling import normalize_text, sample_by_group, seed_from
from .seeder import CurationSeeder, SeedProgress, SeedResult, filter_candidates
from .store import CuratedHotelStore

__all__ = [
    "CuratedHotelReader",
    "CuratedHotelStore",
    "CurationSeeder",
    "LEASE_NAME",
    "SeedProgress",
    "SeedResult",
    "SeedRunTracker",
    "SeedTrigger",
    "TriggerResult",
    "clamp_limit",
    "default_request",
    "execute_seed_run",
    "filter_candidates",
    "normalize_text",
    "sample_by_group",
    "seed_from",
]
