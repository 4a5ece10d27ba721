"""Celery task package exposing the configured app and seeding tasks."""

from __future__ import annotations

from .celery_app import celery_app as app
from .seeding import process_seed_run, schedule_curated_seed, warm_vendor_cache

__all__ = [
    "app",
    "process_seed_run",
    "schedule_curated_seed",
    "warm_vendor_cache",
]
