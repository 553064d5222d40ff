"""Reads for accounts, invoices, payments and billable deliveries."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from supabase import Client

from ..errors import NotFoundError, PersistenceError
from ..models.domain import BillingAccount, Delivery, Invoice, Payment, to_money
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

BALANCE_SWAP_ATTEMPTS = 5


def swap_prepaid_balance(
    client: Client, user_id: str, change: Callable[[Decimal], Decimal]
) -> tuple[Decimal, Decimal]:
    """Apply ``change`` to the stored balance with a compare-and-set update.

    The update only matches while the balance still holds the value it was
    computed from, so a concurrent top-up forces a re-read instead of being
    overwritten. Returns ``(before, after)``.
    """

    for attempt in range(1, BALANCE_SWAP_ATTEMPTS + 1):
        rows = client.table("users").select("id, prepaid_balance").eq("id", user_id).limit(1).execute().data
        if not rows:
            raise NotFoundError("User", user_id)
        stored = rows[0].get("prepaid_balance")
        before = to_money(stored)
        after = to_money(change(before))
        if after == before:
            return before, after

        query = client.table("users").update({"prepaid_balance": str(after)}).eq("id", user_id)
        query = query.is_("prepaid_balance", "null") if stored is None else query.eq("prepaid_balance", stored)
        if query.execute().data:
            return before, after
        logger.info(f"Prepaid balance for user {user_id} changed underneath attempt {attempt}, retrying")

    raise PersistenceError(
        f"Prepaid balance for user {user_id} kept changing; gave up after {BALANCE_SWAP_ATTEMPTS} attempts."
    )


def adjust_prepaid_balance(
    uow: UnitOfWork, user_id: str, change: Callable[[Decimal], Decimal]
) -> tuple[Decimal, Decimal]:
    """``swap_prepaid_balance`` inside a unit; rollback reverses the delta rather than restoring a snapshot."""

    before, after = swap_prepaid_balance(uow.client, user_id, change)
    delta = after - before
    if delta:
        uow.on_rollback(
            f"revert prepaid balance of user {user_id} by {delta}",
            lambda: swap_prepaid_balance(uow.client, user_id, lambda current: current - delta),
        )
    return before, after


def fetch_account(client: Client, user_id: str) -> Optional[BillingAccount]:
    rows = client.table("users").select("*").eq("id", user_id).limit(1).execute().data
    return BillingAccount.from_row(rows[0]) if rows else None


def fetch_billable_deliveries(
    client: Client, user_id: str, period_start: date, period_end: date
) -> list[Delivery]:
    """Delivered, not yet invoiced deliveries within the inclusive period."""

    rows = (
        client.table("subscription_deliveries")
        .select("*")
        .eq("user_id", user_id)
        .eq("status", "delivered")
        .gte("delivery_date", period_start.isoformat())
        .lte("delivery_date", period_end.isoformat())
        .is_("invoice_id", "null")
        .order("delivery_date")
        .execute()
        .data
        or []
    )
    product_ids = sorted({row["product_id"] for row in rows if row.get("product_id")})
    products: dict[str, dict] = {}
    if product_ids:
        product_rows = client.table("products").select("id, name, unit").in_("id", product_ids).execute().data
        products = {row["id"]: row for row in product_rows or []}

    deliveries = []
    for row in rows:
        product = products.get(row.get("product_id"), {})
        enriched = {**row, "product_name": product.get("name"), "product_unit": product.get("unit")}
        deliveries.append(Delivery.from_row(enriched))
    return deliveries


def fetch_invoice(client: Client, invoice_id: str) -> Optional[Invoice]:
    rows = client.table("invoices").select("*").eq("id", invoice_id).limit(1).execute().data
    return Invoice.from_row(rows[0]) if rows else None


def fetch_invoices(
    client: Client,
    user_id: str | None = None,
    *,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Invoice]:
    query = client.table("invoices").select("*")
    if user_id is not None:
        query = query.eq("user_id", user_id)
    if status is not None:
        query = query.eq("status", status)
    rows = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute().data
    return [Invoice.from_row(row) for row in rows or []]


def fetch_payments(client: Client, user_id: str, *, limit: int = 50, offset: int = 0) -> list[Payment]:
    rows = (
        client.table("payments")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
        .data
    )
    return [Payment.from_row(row) for row in rows or []]


def fetch_cycle_user_ids(client: Client, cycle: str) -> list[str]:
    """Users holding at least one active subscription on the billing cycle."""

    rows = (
        client.table("subscriptions")
        .select("user_id")
        .eq("billing_cycle", cycle)
        .eq("status", "active")
        .execute()
        .data
        or []
    )
    seen: dict[str, None] = {}
    for row in rows:
        seen.setdefault(row["user_id"], None)
    return list(seen)
