"""Deterministic per-day sampling of catalog candidates."""

from __future__ import annotations

import hashlib
import random
import re
import unicodedata
from collections.abc import Callable, Sequence
from typing import TypeVar

from ..schemas.hotels import CatalogRecord

T = TypeVar("T")

UNKNOWN_GROUP = "Unknown"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_text(value: str | None) -> str:
    """Lowercase, strip accents and collapse punctuation to single spaces."""

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(" ", stripped.lower()).strip()


def seed_from(text: str) -> int:
    """Stable 64-bit seed derived from ``text``."""

    return int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")


def seeded_shuffle(items: Sequence[T], seed_text: str) -> list[T]:
    shuffled = list(items)
    random.Random(seed_from(seed_text)).shuffle(shuffled)
    return shuffled


def city_matcher(cities: Sequence[str]) -> Callable[[str | None], str | None]:
    """Return a function mapping a raw city name onto one of ``cities``.

    A city matches when either normalized name contains the other. With no
    configured cities, every record groups under its own city name.
    """

    targets = [(city, normalize_text(city)) for city in cities if normalize_text(city)]

    def match(raw_city: str | None) -> str | None:
        if not targets:
            return raw_city or UNKNOWN_GROUP
        normalized = normalize_text(raw_city)
        if not normalized:
            return None
        for label, target in targets:
            if target in normalized or normalized in target:
                return label
        return None

    return match


def sample_by_group(
    candidates: Sequence[CatalogRecord],
    *,
    cities: Sequence[str],
    limit_per_group: int,
    limit_total: int,
    date_key: str,
) -> list[CatalogRecord]:
    """Pick a date-seeded sample of at most ``limit_per_group`` per city.

    The same candidates, configuration and ``date_key`` always give the same
    sample; a different ``date_key`` reshuffles it.
    """

    match = city_matcher(cities)
    groups: dict[str, list[CatalogRecord]] = {}
    for record in candidates:
        group = match(record.city)
        if group is None:
            continue
        groups.setdefault(group, []).append(record)

    picked: list[CatalogRecord] = []
    for group, members in groups.items():
        picked.extend(seeded_shuffle(members, f"{group}-{date_key}")[:limit_per_group])

    return seeded_shuffle(picked, date_key)[:limit_total]
