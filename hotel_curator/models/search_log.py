"""SQLAlchemy model for lightweight search diagnostics."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class SearchLog(Base):
    """Summary of one orchestrated search: request shape, attempts and outcome."""

    __tablename__ = "search_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    correlation_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    request: Mapped[dict[str, object]] = mapped_column(JSON, nullable=False)
    attempts: Mapped[list[dict[str, object]]] = mapped_column(JSON, nullable=False, default=list)
    nationality_requested: Mapped[str] = mapped_column(String(8), nullable=False)
    nationality_used: Mapped[str | None] = mapped_column(String(8), nullable=True)
    fallback_hit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    result_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
