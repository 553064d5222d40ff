"""Nearest-neighbor tour construction."""

from __future__ import annotations

import math
from typing import Sequence

from ...config import settings
from ...models.domain import Delivery, Point
from ..geospatial import distance
from .models import Tour, TourLeg


def estimate_duration_minutes(total_distance_km: float, minutes_per_km: float | None = None) -> int:
    rate = settings.minutes_per_km if minutes_per_km is None else minutes_per_km
    return math.ceil(total_distance_km * rate)


def build_tour(
    stops: Sequence[Delivery],
    start: Point,
    *,
    minutes_per_km: float | None = None,
) -> Tour:
    """Order stops greedily, always visiting the closest unvisited stop next.

    Ties go to the stop that appears first in ``stops``. Every stop must carry
    a location; the caller filters ungeocoded deliveries out beforehand.
    """

    unvisited = list(stops)
    legs: list[TourLeg] = []
    current = start
    total = 0.0

    while unvisited:
        nearest_index = 0
        nearest_distance = distance(current, unvisited[0].location)
        for index in range(1, len(unvisited)):
            candidate = distance(current, unvisited[index].location)
            if candidate < nearest_distance:
                nearest_distance = candidate
                nearest_index = index

        chosen = unvisited.pop(nearest_index)
        legs.append(TourLeg(delivery=chosen, sequence=len(legs) + 1, distance_from_prev_km=nearest_distance))
        total += nearest_distance
        current = chosen.location

    return Tour(
        legs=legs,
        total_distance_km=total,
        estimated_duration_minutes=estimate_duration_minutes(total, minutes_per_km),
    )
