"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List

from ...models.domain import Delivery, Route


@dataclass(slots=True)
class TourLeg:
    delivery: Delivery
    sequence: int
    distance_from_prev_km: float


@dataclass(slots=True)
class Tour:
    legs: List[TourLeg]
    total_distance_km: float
    estimated_duration_minutes: int

    @property
    def ordered_deliveries(self) -> list[Delivery]:
        return [leg.delivery for leg in self.legs]


@dataclass(slots=True)
class RouteGenerationResult:
    route_date: date
    routes: List[Route] = field(default_factory=list)
    zone_count: int = 0
    agent_count: int = 0
    unrouted_delivery_ids: List[str] = field(default_factory=list)
    ungeocoded_delivery_ids: List[str] = field(default_factory=list)
    failed_agent_ids: List[str] = field(default_factory=list)
    replaced_route_ids: List[str] = field(default_factory=list)
