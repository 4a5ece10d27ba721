"""Streaming ingestion of the vendor catalog."""

from .stream import (
    CatalogStreamIngestor,
    CuratedWriter,
    StreamProgress,
    StreamResult,
    safety_timeout_seconds,
)
from .tokenizer import CatalogTokenizer, StreamState

__all__ = [
    "CatalogStreamIngestor",
    "CatalogTokenizer",
    "CuratedWriter",
    "StreamProgress",
    "StreamResult",
    "StreamState",
    "safety_timeout_seconds",
]
