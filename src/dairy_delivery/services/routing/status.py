"""Stop and delivery status transitions with route roll-up."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from ...db.supabase import require_client
from ...errors import InvalidStatusTransition, NotFoundError, ValidationError
from ...models.domain import STOP_STATUSES, RouteStop
from ...persistence import routes as route_store
from ...persistence.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

STOP_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"in_transit", "delivered", "missed"}),
    "in_transit": frozenset({"delivered", "missed"}),
    "delivered": frozenset(),
    "missed": frozenset(),
}

TERMINAL_STOP_STATUSES = frozenset({"delivered", "missed"})

# Stop outcome -> subscription delivery status. in_transit leaves the delivery scheduled.
DELIVERY_STATUS_FOR_STOP = {"delivered": "delivered", "missed": "failed"}


def check_stop_transition(current: str, requested: str) -> None:
    if requested not in STOP_STATUSES:
        raise ValidationError(f"Unknown stop status '{requested}'.")
    if requested not in STOP_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition("stop", current, requested)


def rolled_up_route_status(route_status: str, stop_statuses: list[str]) -> str:
    """Route status implied by its stops; cancelled routes stay cancelled."""

    if route_status == "cancelled" or not stop_statuses:
        return route_status
    if all(status in TERMINAL_STOP_STATUSES for status in stop_statuses):
        return "completed"
    if any(status != "pending" for status in stop_statuses):
        return "in_progress"
    return route_status


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def update_stop_status(
    stop_id: str,
    status: str,
    *,
    notes: Optional[str] = None,
    proof_image: Optional[str] = None,
    agent_id: Optional[str] = None,
    client: Client | None = None,
) -> RouteStop:
    """Move a stop forward and keep its delivery and route in step."""

    client = require_client(client)
    stop_row = route_store.fetch_stop_row(client, stop_id)
    if stop_row is None:
        raise NotFoundError("Route stop", stop_id)
    route_row = route_store.fetch_route(client, stop_row["route_id"])
    if route_row is None or (agent_id is not None and route_row["agent_id"] != agent_id):
        raise NotFoundError("Route stop", stop_id)

    current = stop_row.get("status", "pending")
    check_stop_transition(current, status)

    timestamp = _now()
    stop_update: dict = {"status": status}
    if notes is not None:
        stop_update["delivery_notes"] = notes
    if proof_image is not None:
        stop_update["proof_image"] = proof_image
    if status == "in_transit":
        stop_update["arrived_at"] = timestamp
    elif status == "delivered":
        stop_update["delivered_at"] = timestamp

    with UnitOfWork(client, label=f"status update for stop {stop_id}") as uow:
        updated = uow.update("route_stops", stop_update, ids=[stop_id])

        delivery_id = stop_row.get("subscription_delivery_id")
        delivery_status = DELIVERY_STATUS_FOR_STOP.get(status)
        if delivery_id and delivery_status:
            delivery_update: dict = {"status": delivery_status}
            if notes is not None:
                delivery_update["delivery_notes"] = notes
            if delivery_status == "delivered":
                delivery_update["delivered_at"] = timestamp
            else:
                delivery_update["failed_at"] = timestamp
            uow.update("subscription_deliveries", delivery_update, ids=[delivery_id])

        sibling_statuses = [
            status if stop.id == stop_id else stop.status
            for stop in route_store.fetch_stops(client, route_row["id"])
        ]
        new_route_status = rolled_up_route_status(route_row.get("status", "planned"), sibling_statuses)
        if new_route_status != route_row.get("status"):
            uow.update("routes", {"status": new_route_status}, ids=[route_row["id"]])
            logger.info(f"Route {route_row['id']} is now {new_route_status}")

    row = updated[0] if updated else {**stop_row, **stop_update}
    return RouteStop.from_row(row)
