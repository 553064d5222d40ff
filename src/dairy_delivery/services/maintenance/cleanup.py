"""Retention-based removal of old operational data.

Ledger entries are an audit trail and are never removed here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from supabase import Client

from ...config import settings
from ...db.supabase import require_client

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CleanupResult:
    deliveries: int = 0
    routes: int = 0
    route_stops: int = 0
    invoices: int = 0


def _ids(response) -> list[str]:
    return [row["id"] for row in response.data or []]


def _delete(client: Client, table: str, ids: list[str]) -> int:
    if ids:
        client.table(table).delete().in_("id", ids).execute()
    return len(ids)


def cleanup_old_data(today: date | None = None, *, client: Client | None = None) -> CleanupResult:
    today = today or date.today()
    client = require_client(client)
    result = CleanupResult()

    delivery_cutoff = (today - timedelta(days=settings.delivery_retention_days)).isoformat()
    result.deliveries = _delete(
        client,
        "subscription_deliveries",
        _ids(
            client.table("subscription_deliveries")
            .select("id")
            .eq("status", "delivered")
            .lt("delivered_at", delivery_cutoff)
            .execute()
        ),
    )

    route_cutoff = (today - timedelta(days=settings.route_retention_days)).isoformat()
    route_ids = _ids(
        client.table("routes").select("id").eq("status", "completed").lt("route_date", route_cutoff).execute()
    )
    if route_ids:
        stop_ids = _ids(client.table("route_stops").select("id").in_("route_id", route_ids).execute())
        result.route_stops = _delete(client, "route_stops", stop_ids)
        result.routes = _delete(client, "routes", route_ids)

    invoice_cutoff = (today - timedelta(days=settings.invoice_retention_days)).isoformat()
    result.invoices = _delete(
        client,
        "invoices",
        _ids(client.table("invoices").select("id").eq("status", "paid").lt("paid_at", invoice_cutoff).execute()),
    )

    logger.info(
        f"Cleaned up {result.deliveries} deliveries, {result.routes} routes "
        f"({result.route_stops} stops), {result.invoices} invoices"
    )
    return result
