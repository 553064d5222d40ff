"""Route, stop and delivery persistence."""

from __future__ import annotations

from datetime import date
from typing import Optional

from supabase import Client

from ..models.domain import Agent, Delivery, Point, Route, RouteStop
from ..services.routing.models import Tour
from .unit_of_work import UnitOfWork


def _rows(response) -> list[dict]:
    return list(response.data or [])


def _lookup(client: Client, table: str, ids: set[str], columns: str = "*") -> dict[str, dict]:
    if not ids:
        return {}
    rows = _rows(client.table(table).select(columns).in_("id", sorted(ids)).execute())
    return {row["id"]: row for row in rows}


def fetch_scheduled_deliveries(client: Client, route_date: date) -> list[Delivery]:
    """Scheduled deliveries for the date that no route has claimed yet."""

    rows = _rows(
        client.table("subscription_deliveries")
        .select("*")
        .eq("delivery_date", route_date.isoformat())
        .eq("status", "scheduled")
        .is_("route_id", "null")
        .order("created_at")
        .execute()
    )
    addresses = _lookup(client, "addresses", {row["address_id"] for row in rows if row.get("address_id")})
    products = _lookup(client, "products", {row["product_id"] for row in rows if row.get("product_id")})

    deliveries: list[Delivery] = []
    for row in rows:
        product = products.get(row.get("product_id"), {})
        enriched = {**row, "product_name": product.get("name")}
        deliveries.append(Delivery.from_row(enriched, addresses.get(row.get("address_id"))))
    return deliveries


def fetch_active_agents(client: Client) -> list[Agent]:
    rows = _rows(
        client.table("users")
        .select("id, full_name")
        .eq("role", "agent")
        .eq("status", "active")
        .order("created_at")
        .execute()
    )
    return [Agent(id=row["id"], full_name=row.get("full_name")) for row in rows]


def fetch_route_rows_for_date(client: Client, route_date: date) -> list[dict]:
    return _rows(client.table("routes").select("*").eq("route_date", route_date.isoformat()).execute())


def delete_routes(uow: UnitOfWork, route_ids: list[str]) -> None:
    """Remove routes with their stops and release the deliveries they claimed."""

    if not route_ids:
        return
    stop_rows = _rows(uow.table("route_stops").select("id").in_("route_id", route_ids).execute())
    delivery_rows = _rows(
        uow.table("subscription_deliveries").select("id").in_("route_id", route_ids).execute()
    )
    uow.update(
        "subscription_deliveries",
        {"route_id": None, "agent_id": None},
        ids=[row["id"] for row in delivery_rows],
    )
    uow.delete("route_stops", ids=[row["id"] for row in stop_rows])
    uow.delete("routes", ids=route_ids)


def insert_route(
    uow: UnitOfWork,
    *,
    agent: Agent,
    route_date: date,
    tour: Tour,
    depot: Point,
    depot_label: str,
) -> Route:
    """Persist a route, its ordered stops, and bind the source deliveries."""

    route_row = uow.insert(
        "routes",
        {
            "agent_id": agent.id,
            "route_name": f"{agent.full_name or 'Agent'} - {route_date.isoformat()}",
            "route_date": route_date.isoformat(),
            "status": "planned",
            "total_distance": round(tour.total_distance_km, 3),
            "estimated_duration": tour.estimated_duration_minutes,
            "depot_location": {
                "latitude": depot.latitude,
                "longitude": depot.longitude,
                "address": depot_label,
            },
        },
    )[0]

    stop_rows = []
    for leg in tour.legs:
        delivery = leg.delivery
        stop_rows.append(
            {
                "route_id": route_row["id"],
                "user_id": delivery.user_id,
                "address_id": delivery.address_id,
                "subscription_delivery_id": delivery.id,
                "sequence": leg.sequence,
                "stop_type": "subscription",
                "latitude": delivery.location.latitude,
                "longitude": delivery.location.longitude,
                "distance_from_prev_km": round(leg.distance_from_prev_km, 3),
                "delivery_items": [
                    {
                        "product_id": delivery.product_id,
                        "product_name": delivery.product_name,
                        "quantity": delivery.quantity,
                        "unit_price": str(delivery.unit_price),
                    }
                ],
                "total_amount": str(delivery.total_price),
                "status": "pending",
            }
        )
    inserted_stops = uow.insert("route_stops", stop_rows)
    uow.update(
        "subscription_deliveries",
        {"route_id": route_row["id"], "agent_id": agent.id},
        ids=[leg.delivery.id for leg in tour.legs],
    )
    return Route.from_row(route_row, [RouteStop.from_row(row) for row in inserted_stops])


def fetch_route(client: Client, route_id: str) -> Optional[dict]:
    rows = _rows(client.table("routes").select("*").eq("id", route_id).limit(1).execute())
    return rows[0] if rows else None


def fetch_stops(client: Client, route_id: str) -> list[RouteStop]:
    rows = _rows(client.table("route_stops").select("*").eq("route_id", route_id).order("sequence").execute())
    return [RouteStop.from_row(row) for row in rows]


def fetch_agent_route(client: Client, agent_id: str, route_date: date) -> Optional[Route]:
    rows = _rows(
        client.table("routes")
        .select("*")
        .eq("agent_id", agent_id)
        .eq("route_date", route_date.isoformat())
        .limit(1)
        .execute()
    )
    if not rows:
        return None
    return Route.from_row(rows[0], fetch_stops(client, rows[0]["id"]))


def fetch_routes(client: Client, route_date: date | None = None, status: str | None = None) -> list[Route]:
    query = client.table("routes").select("*")
    if route_date is not None:
        query = query.eq("route_date", route_date.isoformat())
    if status is not None:
        query = query.eq("status", status)
    rows = _rows(query.order("route_date", desc=True).execute())
    return [Route.from_row(row, fetch_stops(client, row["id"])) for row in rows]


def fetch_stop_row(client: Client, stop_id: str) -> Optional[dict]:
    rows = _rows(client.table("route_stops").select("*").eq("id", stop_id).limit(1).execute())
    return rows[0] if rows else None
