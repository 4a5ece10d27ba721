"""Pydantic schemas for curation seeding requests, runs and curated pages."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.config import CurationSettings
from .hotels import CuratedHotelRecord

SeedMode = Literal["fast_stream", "from_hotellist"]
RunStatus = Literal["queued", "running", "done", "error"]


def _upper_codes(value: Any) -> Any:
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list | tuple | set):
        return [str(item).strip().upper() for item in value if str(item).strip()]
    return value


class SeedFilters(BaseModel):
    """Candidate filters applied by the buffered seeder."""

    model_config = ConfigDict(extra="forbid")

    countries: list[str] = Field(default_factory=list)
    cities: list[str] = Field(default_factory=list)
    min_stars: float = Field(default=0, ge=0)
    require_geo: bool = False

    @field_validator("countries", mode="before")
    @classmethod
    def _normalize_countries(cls, value: Any) -> Any:
        return _upper_codes(value)


class BufferedSeedRequest(BaseModel):
    """Options for a seed run that fetches the whole catalog first."""

    model_config = ConfigDict(extra="forbid")

    filters: SeedFilters = Field(default_factory=SeedFilters)
    limit_per_group: int = Field(default=30, ge=1)
    limit_total: int = Field(default=200, ge=1)
    enrich_details: bool = True
    bypass_cache: bool = True
    max_runtime_ms: int = Field(default=480000, gt=0)
    catalog_timeout_ms: int | None = Field(default=None, gt=0)

    @classmethod
    def from_settings(cls, settings: CurationSettings, **overrides: Any) -> BufferedSeedRequest:
        values: dict[str, Any] = {
            "filters": SeedFilters(
                countries=settings.countries,
                cities=settings.cities,
                min_stars=settings.min_stars,
                require_geo=settings.require_geo,
            ),
            "limit_per_group": settings.limit_per_city,
            "limit_total": settings.limit_total,
            "enrich_details": settings.enrich_details,
            "max_runtime_ms": settings.max_runtime_ms,
        }
        values.update(overrides)
        return cls.model_validate(values)


class StreamSeedRequest(BaseModel):
    """Options for a seed run that streams the catalog record by record."""

    model_config = ConfigDict(extra="forbid")

    allowed_groups: list[str] = Field(min_length=1)
    per_group_limit: int = Field(default=40, ge=1)
    overall_limit: int = Field(default=250, ge=1)
    hard_timeout_ms: int = Field(default=120000, gt=0)
    first_batch_size: int = Field(default=20, ge=1)
    batch_size: int = Field(default=200, ge=1)

    @field_validator("allowed_groups", mode="before")
    @classmethod
    def _normalize_groups(cls, value: Any) -> Any:
        return _upper_codes(value)

    @classmethod
    def from_settings(cls, settings: CurationSettings, **overrides: Any) -> StreamSeedRequest:
        values: dict[str, Any] = {
            "allowed_groups": settings.stream_countries,
            "per_group_limit": settings.per_country_limit,
            "overall_limit": settings.overall_limit,
            "hard_timeout_ms": settings.hard_timeout_ms,
            "first_batch_size": settings.first_batch_size,
            "batch_size": settings.batch_size,
        }
        values.update(overrides)
        return cls.model_validate(values)


class SeedRunView(BaseModel):
    """Public view of a persisted seed run."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    mode: str
    status: str
    stage: str
    request: dict[str, Any] = Field(default_factory=dict)
    processed: int = 0
    total: int | None = None
    per_group_counts: dict[str, int] = Field(default_factory=dict)
    seeded_count: int = 0
    inserted_count: int | None = None
    updated_count: int | None = None
    aborted_early: bool | None = None
    last_error: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class CuratedPage(BaseModel):
    """One page of the curated collection plus the state of any seeding run."""

    hotels: list[CuratedHotelRecord] = Field(default_factory=list)
    next_cursor: str | None = None
    seeding: bool = False
    stage: str | None = None
    run_id: str | None = None
    seeded_count: int | None = None


class SeedTriggerRequest(BaseModel):
    """Body accepted by the manual seed trigger endpoint."""

    model_config = ConfigDict(extra="forbid")

    mode: SeedMode = "fast_stream"
    countries: list[str] | None = None
    force: bool = False

    @field_validator("countries", mode="before")
    @classmethod
    def _normalize_countries(cls, value: Any) -> Any:
        if value is None:
            return None
        return _upper_codes(value)
