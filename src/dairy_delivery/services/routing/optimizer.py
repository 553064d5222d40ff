"""Pluggable stop-sequencing strategies."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ...config import settings
from ...models.domain import Delivery, Point
from .heuristic import build_tour
from .models import Tour

logger = logging.getLogger(__name__)


class RouteOptimizer(Protocol):
    def optimize(self, stops: Sequence[Delivery], depot: Point) -> Tour:
        ...


class NearestNeighborOptimizer:
    """Greedy sequencing over great-circle distances."""

    def __init__(self, minutes_per_km: float | None = None) -> None:
        self.minutes_per_km = minutes_per_km

    def optimize(self, stops: Sequence[Delivery], depot: Point) -> Tour:
        return build_tour(stops, depot, minutes_per_km=self.minutes_per_km)


class MapsRouteOptimizer:
    """Mapping-provider strategy.

    Waypoint optimization against the provider is not wired up yet, so this
    passes through to the nearest-neighbor heuristic.
    """

    def __init__(self, api_key: str, fallback: RouteOptimizer | None = None) -> None:
        if not api_key:
            raise ValueError("Mapping provider API key is not configured.")
        self.api_key = api_key
        self.fallback = fallback or NearestNeighborOptimizer()

    def optimize(self, stops: Sequence[Delivery], depot: Point) -> Tour:
        logger.info(f"Mapping provider optimization not available, sequencing {len(stops)} stops locally")
        return self.fallback.optimize(stops, depot)


def get_route_optimizer() -> RouteOptimizer:
    if settings.maps_api_key:
        return MapsRouteOptimizer(settings.maps_api_key)
    return NearestNeighborOptimizer()
