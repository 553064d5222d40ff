"""Route generation and assignment orchestration."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from supabase import Client

from ...config import settings
from ...db.supabase import require_client
from ...errors import DairyDeliveryError, NoAgentsAvailable, RoutesAlreadyGenerated
from ...models.domain import Delivery, Point, Route
from ...persistence import routes as route_store
from ...persistence.unit_of_work import UnitOfWork
from ..zoning.service import partition_deliveries
from .models import RouteGenerationResult
from .optimizer import RouteOptimizer, get_route_optimizer

logger = logging.getLogger(__name__)


def depot_point() -> Point:
    return Point(settings.depot_latitude, settings.depot_longitude)


def _check_regeneration(existing: list[dict], route_date: date, replace: bool) -> None:
    if not existing:
        return
    if not replace:
        raise RoutesAlreadyGenerated(
            route_date.isoformat(), "Pass replace=true to regenerate routes that have not started."
        )
    started = [row["id"] for row in existing if row.get("status") != "planned"]
    if started:
        raise RoutesAlreadyGenerated(
            route_date.isoformat(), f"{len(started)} route(s) already started and cannot be replaced."
        )


def _remove_routes(client: Client, route_date: date, existing: list[dict]) -> list[str]:
    route_ids = [row["id"] for row in existing]
    with UnitOfWork(client, label=f"route replacement for {route_date}") as uow:
        route_store.delete_routes(uow, route_ids)
    logger.info(f"Removed {len(route_ids)} planned routes for {route_date} before regeneration")
    return route_ids


def _split_geocoded(deliveries: list[Delivery], result: RouteGenerationResult) -> list[Delivery]:
    result.ungeocoded_delivery_ids = [delivery.id for delivery in deliveries if delivery.location is None]
    return [delivery for delivery in deliveries if delivery.location is not None]


def _log_ungeocoded(result: RouteGenerationResult) -> None:
    if result.ungeocoded_delivery_ids:
        logger.error(
            f"{len(result.ungeocoded_delivery_ids)} deliveries on {result.route_date} have no geocoded address "
            f"and were excluded from routing: {result.ungeocoded_delivery_ids[:10]}"
        )


def generate_routes(
    route_date: date,
    *,
    client: Client | None = None,
    optimizer: RouteOptimizer | None = None,
    replace: bool = False,
) -> RouteGenerationResult:
    """Build one route per active agent for the scheduled deliveries of a date.

    Zones are paired with agents in order; zones left over once agents run out
    are reported in ``unrouted_delivery_ids``. Each agent's route is written as
    its own unit, so one failed unit does not stop the others.
    """

    client = require_client(client)
    optimizer = optimizer or get_route_optimizer()
    result = RouteGenerationResult(route_date=route_date)

    existing = route_store.fetch_route_rows_for_date(client, route_date)
    _check_regeneration(existing, route_date, replace)

    deliveries = route_store.fetch_scheduled_deliveries(client, route_date)
    routable = _split_geocoded(deliveries, result)
    if not routable and not existing:
        _log_ungeocoded(result)
        logger.info(f"No routable deliveries for {route_date}; nothing to route")
        return result

    agents = route_store.fetch_active_agents(client)
    result.agent_count = len(agents)
    if not agents:
        raise NoAgentsAvailable()

    if existing:
        result.replaced_route_ids = _remove_routes(client, route_date, existing)
        routable = _split_geocoded(route_store.fetch_scheduled_deliveries(client, route_date), result)
    _log_ungeocoded(result)

    zones = partition_deliveries(routable)
    result.zone_count = len(zones)
    pair_count = min(len(agents), len(zones))

    for zone in zones[pair_count:]:
        result.unrouted_delivery_ids.extend(zone.delivery_ids)
    if result.unrouted_delivery_ids:
        logger.warning(
            f"{len(zones) - pair_count} zone(s) exceed the {len(agents)} available agents on {route_date}; "
            f"{len(result.unrouted_delivery_ids)} deliveries left unrouted"
        )

    depot = depot_point()
    for agent, zone in zip(agents[:pair_count], zones[:pair_count]):
        tour = optimizer.optimize(zone.deliveries, depot)
        try:
            with UnitOfWork(client, label=f"route for agent {agent.id} on {route_date}") as uow:
                route = route_store.insert_route(
                    uow,
                    agent=agent,
                    route_date=route_date,
                    tour=tour,
                    depot=depot,
                    depot_label=settings.depot_label,
                )
        except DairyDeliveryError as exc:
            logger.error(f"Route for agent {agent.id} on {route_date} was not saved: {exc}")
            result.failed_agent_ids.append(agent.id)
            continue
        result.routes.append(route)
        logger.info(
            f"Route {route.id} for agent {agent.id}: {len(route.stops)} stops, "
            f"{route.total_distance_km:.2f} km, ~{route.estimated_duration_minutes} min"
        )

    logger.info(f"Generated {len(result.routes)} routes for {route_date}")
    return result


def get_agent_route(agent_id: str, route_date: date, *, client: Client | None = None) -> Optional[Route]:
    return route_store.fetch_agent_route(require_client(client), agent_id, route_date)


def list_routes(
    route_date: date | None = None,
    status: str | None = None,
    *,
    client: Client | None = None,
) -> list[Route]:
    return route_store.fetch_routes(require_client(client), route_date=route_date, status=status)
