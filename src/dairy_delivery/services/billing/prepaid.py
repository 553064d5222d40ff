"""Prepaid balance top-ups and automatic invoice settlement."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal, Optional

from supabase import Client

from ...db.supabase import require_client
from ...errors import ValidationError
from ...models.domain import BillingAccount, Payment, to_money
from ...persistence import billing as billing_store
from ...persistence.unit_of_work import UnitOfWork
from . import ledger

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cash", "card", "upi", "netbanking", "wallet")
PREPAID_METHOD = "prepaid_balance"


@dataclass(slots=True)
class PrepaidSettlement:
    """Outcome of applying a prepaid balance to one invoice.

    ``partial`` means the invoice stays open for ``shortfall``; nothing
    follows up on it automatically.
    """

    status: Literal["paid", "partial", "unpaid"]
    applied_amount: Decimal
    shortfall: Decimal
    remaining_prepaid_balance: Decimal
    payment_id: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def settle_invoice(
    uow: UnitOfWork,
    account: BillingAccount,
    invoice_id: str,
    total: Decimal,
) -> PrepaidSettlement:
    """Apply the account's prepaid balance to a freshly issued invoice.

    The balance is re-read inside the unit and debited with a conditional
    update, so top-ups landing while the invoice is built are kept.
    """

    total = to_money(total)
    available, remaining = billing_store.adjust_prepaid_balance(
        uow, account.id, lambda current: current - min(current, total) if current > 0 else current
    )
    applied = to_money(available - remaining)
    account.prepaid_balance = remaining

    if applied <= 0:
        return PrepaidSettlement(
            status="unpaid",
            applied_amount=Decimal("0.00"),
            shortfall=total,
            remaining_prepaid_balance=remaining,
        )

    processed_at = _now()
    if applied == total:
        uow.update(
            "invoices",
            {"paid_amount": str(total), "balance": "0.00", "status": "paid", "paid_at": processed_at},
            ids=[invoice_id],
        )
        payment = uow.insert(
            "payments",
            {
                "user_id": account.id,
                "invoice_id": invoice_id,
                "amount": str(total),
                "payment_method": PREPAID_METHOD,
                "payment_type": "invoice_payment",
                "status": "completed",
                "processed_at": processed_at,
            },
        )[0]
        ledger.append_entry(
            uow, account.id, "credit", total, "Payment via prepaid balance",
            invoice_id=invoice_id, payment_id=payment["id"],
        )
        return PrepaidSettlement(
            status="paid",
            applied_amount=total,
            shortfall=Decimal("0.00"),
            remaining_prepaid_balance=remaining,
            payment_id=payment["id"],
        )

    shortfall = to_money(total - applied)
    uow.update(
        "invoices",
        {"paid_amount": str(applied), "balance": str(shortfall)},
        ids=[invoice_id],
    )
    payment = uow.insert(
        "payments",
        {
            "user_id": account.id,
            "invoice_id": invoice_id,
            "amount": str(applied),
            "payment_method": PREPAID_METHOD,
            "payment_type": "invoice_payment",
            "status": "completed",
            "processed_at": processed_at,
            "notes": "Partial payment - insufficient balance",
        },
    )[0]
    ledger.append_entry(
        uow, account.id, "credit", applied, "Partial payment via prepaid balance",
        invoice_id=invoice_id, payment_id=payment["id"],
    )
    logger.warning(f"Invoice {invoice_id} for user {account.id} left with a prepaid shortfall of {shortfall}")
    return PrepaidSettlement(
        status="partial",
        applied_amount=applied,
        shortfall=shortfall,
        remaining_prepaid_balance=remaining,
        payment_id=payment["id"],
    )


def topup_balance(
    user_id: str,
    amount: Decimal,
    method: str = "card",
    *,
    client: Client | None = None,
) -> Payment:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Top-up amount must be positive.")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Unsupported payment method '{method}'.")

    client = require_client(client)
    with UnitOfWork(client, label=f"prepaid top-up for user {user_id}") as uow:
        billing_store.adjust_prepaid_balance(uow, user_id, lambda current: current + amount)
        payment_row = uow.insert(
            "payments",
            {
                "user_id": user_id,
                "amount": str(amount),
                "payment_method": method,
                "payment_type": "prepaid_topup",
                "status": "completed",
                "processed_at": _now(),
            },
        )[0]
        ledger.append_entry(uow, user_id, "credit", amount, "Prepaid balance topup", payment_id=payment_row["id"])

    logger.info(f"Topped up prepaid balance for user {user_id} by {amount}")
    return Payment.from_row(payment_row)
