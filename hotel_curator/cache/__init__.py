"""Durable TTL cache for vendor responses."""

from .store import CacheRead, CacheStore

__all__ = ["CacheRead", "CacheStore"]
