"""Read-side billing views for users and admins."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from supabase import Client

from ...db.supabase import require_client
from ...errors import NotFoundError
from ...models.domain import BillingAccount, Invoice, Payment, to_money
from ...persistence import billing as billing_store

SETTLED_STATUSES = ("paid", "cancelled")


@dataclass(slots=True)
class BillingSummary:
    account: BillingAccount
    outstanding_balance: Decimal
    invoices: list[Invoice] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)


def outstanding_balance(user_id: str, *, client: Client | None = None) -> Decimal:
    rows = (
        require_client(client)
        .table("invoices")
        .select("balance, status")
        .eq("user_id", user_id)
        .execute()
        .data
        or []
    )
    return to_money(
        sum((to_money(row.get("balance")) for row in rows if row.get("status") not in SETTLED_STATUSES), Decimal("0"))
    )


def get_billing_summary(user_id: str, *, recent: int = 10, client: Client | None = None) -> BillingSummary:
    client = require_client(client)
    account = billing_store.fetch_account(client, user_id)
    if account is None:
        raise NotFoundError("User", user_id)
    return BillingSummary(
        account=account,
        outstanding_balance=outstanding_balance(user_id, client=client),
        invoices=billing_store.fetch_invoices(client, user_id, limit=recent),
        payments=billing_store.fetch_payments(client, user_id, limit=recent),
    )


def list_invoices(
    user_id: str | None = None,
    *,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    client: Client | None = None,
) -> list[Invoice]:
    return billing_store.fetch_invoices(require_client(client), user_id, status=status, limit=limit, offset=offset)


def get_invoice(invoice_id: str, *, user_id: str | None = None, client: Client | None = None) -> Invoice:
    invoice = billing_store.fetch_invoice(require_client(client), invoice_id)
    if invoice is None or (user_id is not None and invoice.user_id != user_id):
        raise NotFoundError("Invoice", invoice_id)
    return invoice


def list_payments(user_id: str, *, limit: int = 50, offset: int = 0, client: Client | None = None) -> list[Payment]:
    return billing_store.fetch_payments(require_client(client), user_id, limit=limit, offset=offset)
