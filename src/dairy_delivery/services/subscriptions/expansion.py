"""Expansion of active subscriptions into dated deliveries."""

from __future__ import annotations

import json
import logging
from datetime import date

from supabase import Client

from ...db.supabase import require_client
from ...models.domain import parse_date, to_money

logger = logging.getLogger(__name__)


def weekday_index(day: date) -> int:
    """Day of week with Sunday as 0, the convention ``delivery_days`` uses."""

    return (day.weekday() + 1) % 7


def _delivery_days(subscription: dict) -> set[int]:
    days = subscription.get("delivery_days") or []
    if isinstance(days, str):
        days = json.loads(days)
    return {int(day) for day in days}


def _covers(subscription: dict, day: date) -> bool:
    start = parse_date(subscription.get("start_date"))
    end = parse_date(subscription.get("end_date"))
    if start is not None and start > day:
        return False
    return end is None or end >= day


def expand_subscriptions(for_date: date | None = None, *, client: Client | None = None) -> int:
    """Create the scheduled deliveries due on ``for_date``. Returns how many were created."""

    for_date = for_date or date.today()
    client = require_client(client)
    weekday = weekday_index(for_date)

    subscriptions = client.table("subscriptions").select("*").eq("status", "active").execute().data or []
    due = [
        subscription
        for subscription in subscriptions
        if _covers(subscription, for_date) and weekday in _delivery_days(subscription)
    ]
    if not due:
        logger.info(f"No subscription deliveries due on {for_date}")
        return 0

    existing_rows = (
        client.table("subscription_deliveries")
        .select("subscription_id")
        .eq("delivery_date", for_date.isoformat())
        .in_("subscription_id", [subscription["id"] for subscription in due])
        .execute()
        .data
        or []
    )
    already_expanded = {row["subscription_id"] for row in existing_rows}

    product_ids = sorted({subscription["product_id"] for subscription in due})
    products = {
        row["id"]: row
        for row in client.table("products").select("id, price, status").in_("id", product_ids).execute().data or []
    }

    rows = []
    for subscription in due:
        if subscription["id"] in already_expanded:
            continue
        product = products.get(subscription["product_id"])
        if product is None or product.get("status") != "active":
            logger.info(f"Skipping subscription {subscription['id']}: product unavailable")
            continue
        quantity = int(subscription.get("default_quantity") or 1)
        unit_price = to_money(product.get("price"))
        rows.append(
            {
                "subscription_id": subscription["id"],
                "user_id": subscription["user_id"],
                "address_id": subscription.get("address_id"),
                "product_id": subscription["product_id"],
                "delivery_date": for_date.isoformat(),
                "quantity": quantity,
                "unit_price": str(unit_price),
                "total_price": str(to_money(unit_price * quantity)),
                "status": "scheduled",
            }
        )

    if rows:
        client.table("subscription_deliveries").insert(rows).execute()
    logger.info(f"Created {len(rows)} subscription deliveries for {for_date}")
    return len(rows)
