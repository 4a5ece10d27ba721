"""Tests for room occupancy normalization."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hotel_curator.schemas.search import Room
from hotel_curator.search.rooms import normalize_room, normalize_rooms


def test_missing_child_ages_are_padded() -> None:
    room = normalize_room({"adt": 2, "chd": 2, "age": [7]})

    assert room.age == [7, 0]


def test_extra_child_ages_are_dropped() -> None:
    room = normalize_room({"adt": 1, "chd": 1, "age": [4, 9, 11]})

    assert room.age == [4]


def test_alternate_field_names_and_string_ages() -> None:
    room = normalize_room({"adults": "3", "children": "2", "childAges": "5, ,12"})

    assert room == Room(adt=3, chd=2, age=[5, 12])


def test_rooms_without_children_carry_no_ages() -> None:
    assert normalize_room({"adt": 2, "chd": 0, "age": [3]}).age == []


def test_invalid_counts_are_clamped() -> None:
    room = normalize_room({"adt": 0, "chd": -2, "age": "x"})

    assert room.adt == 1
    assert room.chd == 0


def test_negative_or_junk_ages_are_replaced_with_default() -> None:
    room = normalize_room({"adt": 2, "chd": 2, "age": ["-1", "junk"]})

    assert room.age == [0, 0]


def test_infinite_values_fall_back_to_defaults() -> None:
    room = normalize_room({"adt": "inf", "chd": 2, "age": ["inf", 1e999]})

    assert room.adt == 1
    assert room.age == [0, 0]


@pytest.mark.parametrize("rooms", [None, []])
def test_empty_request_becomes_one_adult(rooms: list | None) -> None:
    assert normalize_rooms(rooms) == [{"adt": 1, "chd": 0, "age": []}]


def test_room_model_rejects_mismatched_ages() -> None:
    with pytest.raises(ValidationError):
        Room(adt=2, chd=1, age=[])
