"""SQLAlchemy model for the curated hotel collection."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class CuratedHotel(Base):
    """A curated snapshot of one vendor catalog hotel, keyed by vendor hotel id."""

    __tablename__ = "curated_hotels"
    __table_args__ = (Index("ix_curated_hotels_country_hotel_id", "country", "hotel_id"),)

    hotel_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    country: Mapped[str] = mapped_column(String(8), nullable=False, default="")
    star_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="wanderbeds")
    hero_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    image_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    facilities_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seeded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<CuratedHotel id={self.hotel_id} country={self.country} city={self.city}>"
