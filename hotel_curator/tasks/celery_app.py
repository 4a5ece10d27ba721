"""Celery application configuration for Hotel_Curator."""

from __future__ import annotations

from celery import Celery

from ..utils.config import get_settings

SCHEDULE_INTERVAL_SECONDS = 6 * 60 * 60


def _resolve_redis_url() -> str:
    """Return the Redis URL configured for the application."""

    settings = get_settings()
    return settings.redis_url or "redis://localhost:6379/0"


celery_app = Celery(
    "hotel_curator",
    broker=_resolve_redis_url(),
    backend=_resolve_redis_url(),
    include=["hotel_curator.tasks.seeding"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_hijack_root_logger=False,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "schedule-curated-seed": {
            "task": "hotel_curator.schedule_curated_seed",
            "schedule": SCHEDULE_INTERVAL_SECONDS,
        },
        "warm-vendor-cache": {
            "task": "hotel_curator.warm_vendor_cache",
            "schedule": SCHEDULE_INTERVAL_SECONDS,
        },
    },
)
