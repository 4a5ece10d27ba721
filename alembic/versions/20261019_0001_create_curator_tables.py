"""Create cache, curated hotel, seed run, lease and search log tables."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op as alembic_op  # type: ignore[import-untyped]

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the persistence tables and supporting indexes."""

    alembic_op.create_table(
        "cache_entries",
        sa.Column("key", sa.String(length=512), primary_key=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("cached_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ttl_hours", sa.Float(), nullable=False),
    )

    alembic_op.create_table(
        "curated_hotels",
        sa.Column("hotel_id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("country", sa.String(length=8), nullable=False, server_default=""),
        sa.Column("star_rating", sa.Float(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False, server_default="wanderbeds"),
        sa.Column("hero_image_url", sa.String(length=1024), nullable=True),
        sa.Column("image_count", sa.Integer(), nullable=True),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("facilities_count", sa.Integer(), nullable=True),
        sa.Column("seeded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    alembic_op.create_index(
        "ix_curated_hotels_country_hotel_id",
        "curated_hotels",
        ["country", "hotel_id"],
    )

    alembic_op.create_table(
        "seed_runs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("mode", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("stage", sa.String(length=32), nullable=False),
        sa.Column("processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total", sa.Integer(), nullable=True),
        sa.Column("per_group_counts", sa.JSON(), nullable=False),
        sa.Column("seeded_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inserted_count", sa.Integer(), nullable=True),
        sa.Column("updated_count", sa.Integer(), nullable=True),
        sa.Column("aborted_early", sa.Boolean(), nullable=True),
        sa.Column("request", sa.JSON(), nullable=False),
        sa.Column("last_error", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )
    alembic_op.create_index("ix_seed_runs_status", "seed_runs", ["status"])
    alembic_op.create_index("ix_seed_runs_created_at", "seed_runs", ["created_at"])

    alembic_op.create_table(
        "seed_leases",
        sa.Column("name", sa.String(length=64), primary_key=True),
        sa.Column("holder", sa.String(length=64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )

    alembic_op.create_table(
        "search_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("request", sa.JSON(), nullable=False),
        sa.Column("attempts", sa.JSON(), nullable=False),
        sa.Column("nationality_requested", sa.String(length=8), nullable=False),
        sa.Column("nationality_used", sa.String(length=8), nullable=True),
        sa.Column("fallback_hit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("result_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    alembic_op.create_index("ix_search_logs_correlation_id", "search_logs", ["correlation_id"])


def downgrade() -> None:
    """Drop the persistence tables and related indexes."""

    alembic_op.drop_index("ix_search_logs_correlation_id", table_name="search_logs")
    alembic_op.drop_table("search_logs")
    alembic_op.drop_table("seed_leases")
    alembic_op.drop_index("ix_seed_runs_created_at", table_name="seed_runs")
    alembic_op.drop_index("ix_seed_runs_status", table_name="seed_runs")
    alembic_op.drop_table("seed_runs")
    alembic_op.drop_index("ix_curated_hotels_country_hotel_id", table_name="curated_hotels")
    alembic_op.drop_table("curated_hotels")
    alembic_op.drop_table("cache_entries")
