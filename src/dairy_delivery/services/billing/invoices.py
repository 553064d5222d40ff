"""Invoice generation for billing periods.

An invoice claims the deliveries it bills by writing its id onto them, so a
second run over the same period finds nothing left to bill and returns None.
"""

from __future__ import annotations

import calendar
import logging
import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Sequence

from supabase import Client

from ...config import settings
from ...db.supabase import require_client
from ...errors import NotFoundError, ValidationError
from ...models.domain import BILLING_CYCLES, Delivery, Invoice, to_money
from ...persistence import billing as billing_store
from ...persistence.unit_of_work import UnitOfWork
from . import ledger
from .prepaid import PrepaidSettlement, settle_invoice

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


@dataclass(slots=True)
class InvoiceResult:
    invoice: Invoice
    settlement: Optional[PrepaidSettlement] = None


@dataclass(slots=True)
class BatchResult:
    cycle: str
    period_start: date
    period_end: date
    invoices: list[InvoiceResult] = field(default_factory=list)
    failed_user_ids: list[str] = field(default_factory=list)

    @property
    def generated(self) -> int:
        return len(self.invoices)


def compute_totals(deliveries: Sequence[Delivery], tax_rate: Decimal | None = None) -> InvoiceTotals:
    rate = settings.tax_rate if tax_rate is None else Decimal(str(tax_rate))
    subtotal = to_money(sum((delivery.total_price for delivery in deliveries), Decimal("0")))
    tax = to_money(subtotal * rate)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=to_money(subtotal + tax))


def due_date_for(invoice_date: date, cycle: str) -> date:
    days = settings.weekly_due_days if cycle == "weekly" else settings.monthly_due_days
    return invoice_date + timedelta(days=days)


def generate_invoice_number(invoice_date: date) -> str:
    return f"INV-{invoice_date:%Y%m%d}-{secrets.token_hex(3).upper()}"


def build_line_items(deliveries: Sequence[Delivery]) -> list[dict]:
    items = []
    for delivery in deliveries:
        unit = f" {delivery.product_unit}" if delivery.product_unit else ""
        items.append(
            {
                "delivery_id": delivery.id,
                "date": delivery.delivery_date.isoformat(),
                "description": f"{delivery.product_name or 'Product'} ({delivery.quantity}{unit})",
                "quantity": delivery.quantity,
                "unit_price": str(delivery.unit_price),
                "total": str(delivery.total_price),
            }
        )
    return items


def generate_invoice(
    user_id: str,
    period_start: date,
    period_end: date,
    cycle: str = "weekly",
    *,
    today: date | None = None,
    client: Client | None = None,
) -> Optional[InvoiceResult]:
    """Bill a user's delivered, not yet invoiced deliveries for the period.

    Returns None when there is nothing to bill.
    """

    if cycle not in BILLING_CYCLES:
        raise ValidationError(f"Unknown billing cycle '{cycle}'.")
    if period_start > period_end:
        raise ValidationError("Billing period start must not be after its end.")

    client = require_client(client)
    account = billing_store.fetch_account(client, user_id)
    if account is None:
        raise NotFoundError("User", user_id)

    deliveries = billing_store.fetch_billable_deliveries(client, user_id, period_start, period_end)
    if not deliveries:
        return None

    invoice_date = today or date.today()
    totals = compute_totals(deliveries)
    invoice_number = generate_invoice_number(invoice_date)
    settlement: Optional[PrepaidSettlement] = None

    with UnitOfWork(client, label=f"invoice {invoice_number} for user {user_id}") as uow:
        invoice_row = uow.insert(
            "invoices",
            {
                "user_id": user_id,
                "invoice_number": invoice_number,
                "invoice_date": invoice_date.isoformat(),
                "due_date": due_date_for(invoice_date, cycle).isoformat(),
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "subtotal": str(totals.subtotal),
                "tax": str(totals.tax),
                "total": str(totals.total),
                "paid_amount": "0.00",
                "balance": str(totals.total),
                "status": "sent",
                "line_items": build_line_items(deliveries),
                "sent_at": datetime.now(timezone.utc).isoformat(),
            },
        )[0]
        uow.update(
            "subscription_deliveries",
            {"invoice_id": invoice_row["id"]},
            ids=[delivery.id for delivery in deliveries],
        )
        ledger.append_entry(
            uow, user_id, "debit", totals.total, f"Invoice {invoice_number}", invoice_id=invoice_row["id"]
        )
        if account.is_prepaid:
            settlement = settle_invoice(uow, account, invoice_row["id"], totals.total)

    invoice = billing_store.fetch_invoice(client, invoice_row["id"]) or Invoice.from_row(invoice_row)
    logger.info(
        f"Issued invoice {invoice_number} to user {user_id}: {len(deliveries)} deliveries, total {totals.total}"
    )
    return InvoiceResult(invoice=invoice, settlement=settlement)


def _one_month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def billing_period(cycle: str, today: date) -> tuple[date, date]:
    """The period a batch run on ``today`` covers: back one week or month, up to yesterday."""

    if cycle == "weekly":
        start = today - timedelta(weeks=1)
    elif cycle == "monthly":
        start = _one_month_before(today)
    else:
        raise ValidationError(f"Unknown billing cycle '{cycle}'.")
    return start, today - timedelta(days=1)


def generate_cycle_invoices(
    cycle: str,
    *,
    today: date | None = None,
    client: Client | None = None,
) -> BatchResult:
    today = today or date.today()
    period_start, period_end = billing_period(cycle, today)
    client = require_client(client)
    result = BatchResult(cycle=cycle, period_start=period_start, period_end=period_end)

    for user_id in billing_store.fetch_cycle_user_ids(client, cycle):
        try:
            invoice = generate_invoice(user_id, period_start, period_end, cycle, today=today, client=client)
        except Exception:
            logger.exception(f"Error generating {cycle} invoice for user {user_id}")
            result.failed_user_ids.append(user_id)
            continue
        if invoice is not None:
            result.invoices.append(invoice)

    logger.info(
        f"Generated {result.generated} {cycle} invoices for {period_start}..{period_end}"
        f" ({len(result.failed_user_ids)} failed)"
    )
    return result


def generate_weekly_invoices(*, today: date | None = None, client: Client | None = None) -> BatchResult:
    return generate_cycle_invoices("weekly", today=today, client=client)


def generate_monthly_invoices(*, today: date | None = None, client: Client | None = None) -> BatchResult:
    return generate_cycle_invoices("monthly", today=today, client=client)


def mark_overdue_invoices(today: date | None = None, *, client: Client | None = None) -> int:
    today = today or date.today()
    client = require_client(client)
    rows = (
        client.table("invoices")
        .select("id")
        .eq("status", "sent")
        .lt("due_date", today.isoformat())
        .gt("balance", 0)
        .execute()
        .data
        or []
    )
    ids = [row["id"] for row in rows]
    if ids:
        client.table("invoices").update({"status": "overdue"}).in_("id", ids).execute()
    logger.info(f"Marked {len(ids)} invoices as overdue")
    return len(ids)
