"""Room occupancy normalization for vendor search payloads."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..schemas.search import Room

DEFAULT_CHILD_AGE = 0


def _to_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default


def _child_ages(room: Mapping[str, Any]) -> list[int]:
    raw = room.get("age")
    if raw is None:
        raw = room.get("childAges")
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, Iterable):
        return []
    ages: list[int] = []
    for item in raw:
        if isinstance(item, str) and not item.strip():
            continue
        age = _to_int(item, -1)
        if age >= 0:
            ages.append(age)
    return ages


def normalize_room(room: Mapping[str, Any]) -> Room:
    """Return one room whose age list has exactly ``chd`` entries.

    Missing ages are padded with :data:`DEFAULT_CHILD_AGE`; extras are dropped.
    """

    adults = max(1, _to_int(room.get("adt", room.get("adults")), 1))
    children = max(0, _to_int(room.get("chd", room.get("children")), 0))
    if children == 0:
        return Room(adt=adults, chd=0, age=[])

    ages = _child_ages(room)[:children]
    ages.extend([DEFAULT_CHILD_AGE] * (children - len(ages)))
    return Room(adt=adults, chd=children, age=ages)


def normalize_rooms(rooms: Iterable[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    """Normalize every room; an empty request becomes one room for one adult."""

    normalized = [normalize_room(room).model_dump() for room in rooms or []]
    return normalized or [Room().model_dump()]
