"""Billing services: invoices, prepaid settlement and the ledger."""

from .invoices import (
    generate_cycle_invoices,
    generate_invoice,
    generate_monthly_invoices,
    generate_weekly_invoices,
    mark_overdue_invoices,
)
from .prepaid import settle_invoice, topup_balance
from .summary import get_billing_summary, get_invoice, list_invoices, list_payments

__all__ = [
    "generate_invoice",
    "generate_cycle_invoices",
    "generate_weekly_invoices",
    "generate_monthly_invoices",
    "mark_overdue_invoices",
    "settle_invoice",
    "topup_balance",
    "get_billing_summary",
    "get_invoice",
    "list_invoices",
    "list_payments",
]
