"""Synthetic data fixtures package for testing."""

from __future__ import annotations

from . import catalog_fixtures, search_fixtures

__all__ = [
    "catalog_fixtures",
    "search_fixtures",
]
