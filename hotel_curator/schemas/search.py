"""Pydantic schemas for search requests, attempts and results."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Room(BaseModel):
    """A normalized room occupancy as the vendor expects it."""

    adt: int = Field(default=1, ge=1)
    chd: int = Field(default=0, ge=0)
    age: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _ages_match_children(self) -> Room:
        if len(self.age) != self.chd:
            raise ValueError("age must list exactly one entry per child")
        return self


class SearchRequest(BaseModel):
    """Inbound search request accepted by the API and CLI."""

    model_config = ConfigDict(extra="forbid")

    hotel_ids: list[str] = Field(min_length=1)
    checkin: date
    checkout: date
    rooms: list[dict[str, Any]] = Field(default_factory=list)
    nationality: str = Field(min_length=2, max_length=2)
    sweep: bool | None = None
    timeout: str | None = None

    @field_validator("hotel_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return value

    @field_validator("nationality")
    @classmethod
    def _upper_nationality(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _check_dates(self) -> SearchRequest:
        if self.checkout <= self.checkin:
            raise ValueError("checkout must be after checkin")
        return self


class SearchAttempt(BaseModel):
    """Diagnostics for one nationality attempt within a search."""

    nationality_code: str
    upstream_status: int | None = None
    error_code: str | int | None = None
    result_count: int = 0
    elapsed_ms: int = 0


class HotelOffer(BaseModel):
    """A search hit mapped onto internal field names."""

    id: str
    name: str | None = None
    stars: float | None = None
    country: str | None = None
    city: str | None = None
    address: str | None = None
    lat: float | None = None
    lon: float | None = None
    lowest_price_total: float | None = None
    currency: str | None = None
    refundable_any: bool = False
    room_offers_count: int = 0


class SearchResult(BaseModel):
    """Outcome of an orchestrated search including sweep diagnostics."""

    token: str | None = None
    count: int = 0
    hotels: list[HotelOffer] = Field(default_factory=list)
    nationality_requested: str
    nationality_used: str | None = None
    fallback_tried: list[str] = Field(default_factory=list)
    fallback_hit: bool = False
    attempts: list[SearchAttempt] = Field(default_factory=list)
