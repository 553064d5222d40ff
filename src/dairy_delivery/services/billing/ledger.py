"""Append-only running-balance ledger.

A debit increases what the user owes and a credit decreases it. Each entry
stores the balance after itself, so reading entries in ``entry_number``
order reproduces the balance without recomputation.
"""

from __future__ import annotations

import secrets
import time
from decimal import Decimal
from typing import Optional, Sequence

from supabase import Client

from ...db.supabase import require_client
from ...errors import ValidationError
from ...models.domain import LedgerEntry, to_money
from ...persistence.unit_of_work import UnitOfWork

ENTRY_TYPES = ("debit", "credit")


def generate_reference_number() -> str:
    return f"REF-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def next_running_balance(previous: Decimal, entry_type: str, amount: Decimal) -> Decimal:
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"Unknown ledger entry type '{entry_type}'.")
    amount = to_money(amount)
    return to_money(previous + amount if entry_type == "debit" else previous - amount)


def latest_entry(client: Client, user_id: str) -> Optional[LedgerEntry]:
    rows = (
        client.table("ledger_entries")
        .select("*")
        .eq("user_id", user_id)
        .order("entry_number", desc=True)
        .limit(1)
        .execute()
        .data
    )
    return LedgerEntry.from_row(rows[0]) if rows else None


def current_balance(user_id: str, *, client: Client | None = None) -> Decimal:
    entry = latest_entry(require_client(client), user_id)
    return entry.running_balance if entry else Decimal("0.00")


def append_entry(
    uow: UnitOfWork,
    user_id: str,
    entry_type: str,
    amount: Decimal,
    description: str,
    *,
    invoice_id: Optional[str] = None,
    payment_id: Optional[str] = None,
    order_id: Optional[str] = None,
) -> LedgerEntry:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Ledger amounts must be positive.")

    previous = latest_entry(uow.client, user_id)
    previous_balance = previous.running_balance if previous else Decimal("0.00")
    entry_number = previous.entry_number + 1 if previous else 1

    row = uow.insert(
        "ledger_entries",
        {
            "user_id": user_id,
            "entry_number": entry_number,
            "entry_type": entry_type,
            "amount": str(amount),
            "running_balance": str(next_running_balance(previous_balance, entry_type, amount)),
            "description": description,
            "reference_number": generate_reference_number(),
            "invoice_id": invoice_id,
            "payment_id": payment_id,
            "order_id": order_id,
        },
    )[0]
    return LedgerEntry.from_row(row)


def list_entries(
    user_id: str,
    *,
    limit: int = 50,
    offset: int = 0,
    client: Client | None = None,
) -> list[LedgerEntry]:
    """Entries newest first."""

    rows = (
        require_client(client)
        .table("ledger_entries")
        .select("*")
        .eq("user_id", user_id)
        .order("entry_number", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
        .data
    )
    return [LedgerEntry.from_row(row) for row in rows or []]


def verify_chain(entries: Sequence[LedgerEntry]) -> bool:
    """True when every running balance follows from the one before it."""

    balance = Decimal("0.00")
    for entry in sorted(entries, key=lambda item: item.entry_number):
        balance = next_running_balance(balance, entry.entry_type, entry.amount)
        if balance != entry.running_balance:
            return False
    return True
