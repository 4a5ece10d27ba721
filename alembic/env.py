"""Alembic migration environment for the curator tables."""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[import-untyped]
from hotel_curator.exceptions import ConfigurationError
from hotel_curator.models.base import Base, load_models
from hotel_curator.utils.config import ENV_PREFIX, get_settings
from hotel_curator.utils.logging import setup_logger

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)
logger = setup_logger("alembic.env", context={"component": "Migrations"})

load_models()
target_metadata = Base.metadata


def database_url() -> str:
    """Migrations only need the curated store, not vendor credentials or API keys."""

    url = get_settings().database_url or config.get_main_option("sqlalchemy.url")
    if not url:
        raise ConfigurationError(f"Set {ENV_PREFIX}DATABASE_URL before running migrations.")
    return url


def _options(url: str) -> dict[str, Any]:
    # SQLite cannot ALTER most column properties in place.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
        "transaction_per_migration": True,
    }


def run_migrations_offline() -> None:
    url = database_url()
    context.configure(url=url, literal_binds=True, **_options(url))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = database_url()
    engine = create_engine(url, poolclass=pool.NullPool)
    logger.info("Applying curator migrations", extra={"stage": "migrate"})

    with engine.connect() as connection:
        context.configure(connection=connection, **_options(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
