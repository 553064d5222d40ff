"""Routing request/response schemas."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Route, RouteStop
from ..services.routing.models import RouteGenerationResult

StopStatus = Literal["pending", "in_transit", "delivered", "missed"]
RouteStatus = Literal["planned", "in_progress", "completed", "cancelled"]


class RouteGenerationRequest(BaseModel):
    date: dt.date
    replace: bool = Field(
        default=False,
        description="Replace existing routes for the date if none of them has started.",
    )


class StopStatusUpdate(BaseModel):
    status: StopStatus
    delivery_notes: Optional[str] = Field(default=None, max_length=1000)
    proof_image: Optional[str] = None


class RouteStopModel(BaseModel):
    id: str
    sequence: int
    status: StopStatus
    customer_id: str
    delivery_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    amount_due: Decimal
    distance_from_prev_km: float
    product_lines: List[dict] = Field(default_factory=list)
    arrived_at: Optional[str] = None
    delivered_at: Optional[str] = None
    delivery_notes: Optional[str] = None

    @classmethod
    def from_domain(cls, stop: RouteStop) -> "RouteStopModel":
        return cls(
            id=stop.id,
            sequence=stop.sequence,
            status=stop.status,
            customer_id=stop.customer_id,
            delivery_id=stop.delivery_id,
            latitude=stop.location.latitude if stop.location else None,
            longitude=stop.location.longitude if stop.location else None,
            amount_due=stop.amount_due,
            distance_from_prev_km=stop.distance_from_prev_km,
            product_lines=stop.product_lines,
            arrived_at=stop.arrived_at,
            delivered_at=stop.delivered_at,
            delivery_notes=stop.delivery_notes,
        )


class RouteModel(BaseModel):
    id: str
    agent_id: str
    name: str
    route_date: dt.date
    status: RouteStatus
    total_distance_km: float
    estimated_duration_minutes: int
    stops: List[RouteStopModel]

    @classmethod
    def from_domain(cls, route: Route) -> "RouteModel":
        return cls(
            id=route.id,
            agent_id=route.agent_id,
            name=route.name,
            route_date=route.route_date,
            status=route.status,
            total_distance_km=route.total_distance_km,
            estimated_duration_minutes=route.estimated_duration_minutes,
            stops=[RouteStopModel.from_domain(stop) for stop in route.stops],
        )


class RouteGenerationResponse(BaseModel):
    date: dt.date
    routes: List[RouteModel]
    zone_count: int
    agent_count: int
    unrouted_delivery_ids: List[str]
    ungeocoded_delivery_ids: List[str]
    failed_agent_ids: List[str]
    replaced_route_ids: List[str]
    message: str

    @classmethod
    def from_result(cls, result: RouteGenerationResult) -> "RouteGenerationResponse":
        return cls(
            date=result.route_date,
            routes=[RouteModel.from_domain(route) for route in result.routes],
            zone_count=result.zone_count,
            agent_count=result.agent_count,
            unrouted_delivery_ids=result.unrouted_delivery_ids,
            ungeocoded_delivery_ids=result.ungeocoded_delivery_ids,
            failed_agent_ids=result.failed_agent_ids,
            replaced_route_ids=result.replaced_route_ids,
            message=f"Generated {len(result.routes)} routes for {result.route_date.isoformat()}",
        )
