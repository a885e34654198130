"""Reproducible selection without a random number generator.

A message is hashed to a 32-bit seed and the seed drives a fixed-stride walk
over a list, so the same message always yields the same picks.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, TypeVar

from moodroute.models import CityRecord, PlaceRecord, RouteTemplate


T = TypeVar("T")

_UINT32 = 0xFFFFFFFF


def string_hash(text: str) -> int:
    """Polynomial rolling hash (multiplier 31), unsigned 32-bit."""
    value = 0
    for ch in text:
        value = (value * 31 + ord(ch)) & _UINT32
    return value


def stride_pick(items: Sequence[T], seed: int, count: int = 3, step: int = 2) -> List[T]:
    """Pick min(count, len(items)) distinct items by striding from seed % n.

    When the stride lands on an index already taken (possible when n shares
    a factor with step) the walk moves forward to the next free index, so
    it terminates for every n. With n = 5 and step 2 this is the plain
    stride walk: indices s, s+2, s+4 (mod 5).
    """
    n = len(items)
    if n == 0 or count <= 0:
        return []

    wanted = min(count, n)
    taken: List[int] = []
    cursor = seed % n
    while len(taken) < wanted:
        index = cursor % n
        while index in taken:
            index = (index + 1) % n
        taken.append(index)
        cursor = index + step
    return [items[index] for index in taken]


def pick_three_routes(routes: Sequence[RouteTemplate], seed: int) -> List[RouteTemplate]:
    return stride_pick(routes, seed, count=3)


def pick_city_anchors(city_knowledge: Optional[CityRecord], seed: int) -> List[PlaceRecord]:
    if city_knowledge is None or not city_knowledge.places:
        return []
    return stride_pick(city_knowledge.places, seed, count=3)
