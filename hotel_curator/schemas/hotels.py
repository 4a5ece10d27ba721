"""Pydantic schemas for vendor catalog entries and curated hotel records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


class CatalogRecord(BaseModel):
    """One hotel entry from the vendor's static catalog.

    Vendor field names vary between endpoints, so each field accepts the
    spellings observed in the catalog and detail payloads.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hotel_id: str = Field(
        default="",
        validation_alias=AliasChoices("hotelid", "hotelId", "hotel_id", "id"),
    )
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "hotelname"))
    city: str | None = Field(default=None, validation_alias=AliasChoices("city", "cityname"))
    country: str = Field(
        default="",
        validation_alias=AliasChoices("country", "countrycode", "countryCode"),
    )
    star_rating: float | None = Field(
        default=None,
        validation_alias=AliasChoices("starrating", "starRating", "stars", "star_rating"),
    )
    lat: float | None = Field(default=None, validation_alias=AliasChoices("lat", "latitude"))
    lng: float | None = Field(
        default=None,
        validation_alias=AliasChoices("lng", "lon", "longitude"),
    )
    address: str | None = None

    @field_validator("hotel_id", "country", mode="before")
    @classmethod
    def _coerce_required_text(cls, value: Any) -> str:
        return _clean_text(value) or ""

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: str) -> str:
        return value.upper()

    @field_validator("name", "city", "address", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return _clean_text(value)

    @field_validator("star_rating", "lat", "lng", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float | None:
        return _parse_float(value)

    @property
    def has_geo(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_curated(self, *, source: str, seeded_at: datetime) -> CuratedHotelRecord:
        """Project the catalog entry onto the curated collection's fields."""

        return CuratedHotelRecord(
            hotel_id=self.hotel_id,
            name=self.name,
            city=self.city,
            country=self.country,
            star_rating=self.star_rating,
            lat=self.lat,
            lng=self.lng,
            address=self.address,
            source=source,
            seeded_at=seeded_at,
        )


class CuratedHotelRecord(BaseModel):
    """A curated hotel as written to and read from the durable store.

    Fields left as ``None`` are not written on upsert, so partial records
    (for example enrichment-only updates) merge into existing rows.
    """

    model_config = ConfigDict(from_attributes=True)

    hotel_id: str = Field(min_length=1)
    name: str | None = None
    city: str | None = None
    country: str | None = None
    star_rating: float | None = None
    lat: float | None = None
    lng: float | None = None
    address: str | None = None
    source: str | None = None
    hero_image_url: str | None = None
    image_count: int | None = None
    short_description: str | None = None
    facilities_count: int | None = None
    seeded_at: datetime | None = None
    updated_at: datetime | None = None

    def merge_values(self) -> dict[str, Any]:
        """Return the column values this record sets, excluding unset fields."""

        return self.model_dump(exclude_none=True, exclude={"updated_at"})
