from datetime import date
from decimal import Decimal

import pytest

from src.dairy_delivery.errors import NotFoundError, PersistenceError, ValidationError
from src.dairy_delivery.models.domain import BillingAccount
from src.dairy_delivery.persistence import billing as billing_store
from src.dairy_delivery.persistence.unit_of_work import UnitOfWork
from src.dairy_delivery.services.billing.invoices import generate_invoice
from src.dairy_delivery.services.billing.ledger import current_balance
from src.dairy_delivery.services.billing.prepaid import settle_invoice, topup_balance
from tests.fakes import FakeSupabase, add_delivery, add_user


def _prepaid_user(db: FakeSupabase, balance: str) -> BillingAccount:
    add_user(db, "U1", payment_mode="prepaid", prepaid_balance=balance)
    return BillingAccount.from_row(db.row("users", "U1"))


def _open_invoice(db: FakeSupabase, total: str) -> str:
    return db.add(
        "invoices",
        {"id": "INV1", "user_id": "U1", "total": total, "paid_amount": "0.00", "balance": total, "status": "sent"},
    )[0]["id"]


def test_full_settlement_pays_invoice_from_balance(fake_db: FakeSupabase):
    account = _prepaid_user(fake_db, "100.00")
    invoice_id = _open_invoice(fake_db, "60.00")

    with UnitOfWork(fake_db) as uow:
        settlement = settle_invoice(uow, account, invoice_id, Decimal("60.00"))

    assert settlement.status == "paid"
    assert settlement.applied_amount == Decimal("60.00")
    assert settlement.remaining_prepaid_balance == Decimal("40.00")
    assert fake_db.row("users", "U1")["prepaid_balance"] == "40.00"
    invoice = fake_db.row("invoices", invoice_id)
    assert invoice["status"] == "paid"
    assert invoice["balance"] == "0.00"
    assert invoice["paid_at"] is not None
    credits = fake_db.rows("ledger_entries", entry_type="credit")
    assert [row["amount"] for row in credits] == ["60.00"]
    assert fake_db.row("payments", settlement.payment_id)["payment_method"] == "prepaid_balance"


def test_partial_settlement_leaves_shortfall_open(fake_db: FakeSupabase):
    account = _prepaid_user(fake_db, "30.00")
    invoice_id = _open_invoice(fake_db, "60.00")

    with UnitOfWork(fake_db) as uow:
        settlement = settle_invoice(uow, account, invoice_id, Decimal("60.00"))

    assert settlement.status == "partial"
    assert settlement.applied_amount == Decimal("30.00")
    assert settlement.shortfall == Decimal("30.00")
    assert fake_db.row("users", "U1")["prepaid_balance"] == "0.00"
    invoice = fake_db.row("invoices", invoice_id)
    assert invoice["status"] == "sent"
    assert invoice["paid_amount"] == "30.00"
    assert invoice["balance"] == "30.00"
    assert fake_db.row("payments", settlement.payment_id)["notes"] == "Partial payment - insufficient balance"
    assert [row["amount"] for row in fake_db.rows("ledger_entries", entry_type="credit")] == ["30.00"]


def test_empty_balance_leaves_invoice_unpaid(fake_db: FakeSupabase):
    account = _prepaid_user(fake_db, "0.00")
    invoice_id = _open_invoice(fake_db, "60.00")

    with UnitOfWork(fake_db) as uow:
        settlement = settle_invoice(uow, account, invoice_id, Decimal("60.00"))

    assert settlement.status == "unpaid"
    assert settlement.shortfall == Decimal("60.00")
    assert fake_db.rows("payments") == []
    assert fake_db.rows("ledger_entries") == []


def test_prepaid_invoice_is_settled_on_issue(fake_db: FakeSupabase):
    _prepaid_user(fake_db, "100.00")
    add_delivery(fake_db, "D1", user_id="U1", delivery_date="2024-06-03", status="delivered", quantity=2)

    result = generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=date(2024, 6, 10))

    assert result.settlement.status == "paid"
    assert result.invoice.status == "paid"
    assert result.invoice.balance == Decimal("0.00")
    assert fake_db.row("users", "U1")["prepaid_balance"] == "37.00"
    entries = sorted(fake_db.rows("ledger_entries"), key=lambda row: row["entry_number"])
    assert [(row["entry_type"], row["amount"], row["running_balance"]) for row in entries] == [
        ("debit", "63.00", "63.00"),
        ("credit", "63.00", "0.00"),
    ]
    assert current_balance("U1") == Decimal("0.00")


def test_failed_settlement_rolls_back_whole_invoice(fake_db: FakeSupabase):
    _prepaid_user(fake_db, "100.00")
    add_delivery(fake_db, "D1", user_id="U1", delivery_date="2024-06-03", status="delivered")
    fake_db.fail_on("payments", "insert")

    with pytest.raises(PersistenceError):
        generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9))

    assert fake_db.row("users", "U1")["prepaid_balance"] == "100.00"
    assert fake_db.rows("invoices") == []
    assert fake_db.rows("ledger_entries") == []
    assert fake_db.row("subscription_deliveries", "D1")["invoice_id"] is None


def test_topup_credits_balance_and_ledger(fake_db: FakeSupabase):
    _prepaid_user(fake_db, "10.00")

    payment = topup_balance("U1", Decimal("50"), "upi")

    assert payment.amount == Decimal("50.00")
    assert payment.payment_type == "prepaid_topup"
    assert payment.status == "completed"
    assert fake_db.row("users", "U1")["prepaid_balance"] == "60.00"
    assert [row["entry_type"] for row in fake_db.rows("ledger_entries")] == ["credit"]


def test_topup_validation(fake_db: FakeSupabase):
    _prepaid_user(fake_db, "10.00")

    with pytest.raises(ValidationError):
        topup_balance("U1", Decimal("0"))
    with pytest.raises(ValidationError):
        topup_balance("U1", Decimal("5"), "cheque")
    with pytest.raises(NotFoundError):
        topup_balance("nobody", Decimal("5"))


def test_topup_during_invoicing_is_not_overwritten(fake_db: FakeSupabase, monkeypatch: pytest.MonkeyPatch):
    _prepaid_user(fake_db, "100.00")
    add_delivery(fake_db, "D1", user_id="U1", delivery_date="2024-06-03", status="delivered", quantity=2)
    fetch_deliveries = billing_store.fetch_billable_deliveries

    def fetch_then_topup(*args, **kwargs):
        deliveries = fetch_deliveries(*args, **kwargs)
        topup_balance("U1", Decimal("50.00"), "upi")
        return deliveries

    monkeypatch.setattr(billing_store, "fetch_billable_deliveries", fetch_then_topup)

    result = generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=date(2024, 6, 10))

    assert result.settlement.status == "paid"
    assert result.settlement.remaining_prepaid_balance == Decimal("87.00")
    assert fake_db.row("users", "U1")["prepaid_balance"] == "87.00"


class _RacingSupabase(FakeSupabase):
    """Changes the user's balance just before each of the next ``races`` balance writes."""

    def __init__(self, races: int) -> None:
        super().__init__()
        self.races = races

    def record(self, table: str, operation: str) -> None:
        if table == "users" and operation == "update" and self.races:
            self.races -= 1
            row = self.tables["users"][0]
            row["prepaid_balance"] = str(Decimal(row["prepaid_balance"]) + Decimal("50.00"))
        super().record(table, operation)


def test_balance_write_retries_after_concurrent_change():
    db = _RacingSupabase(races=1)
    add_user(db, "U1", payment_mode="prepaid", prepaid_balance="100.00")
    add_delivery(db, "D1", user_id="U1", delivery_date="2024-06-03", status="delivered", quantity=2)

    result = generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), client=db)

    assert result.settlement.status == "paid"
    assert db.row("users", "U1")["prepaid_balance"] == "87.00"


def test_balance_write_gives_up_and_rolls_back_when_always_raced():
    db = _RacingSupabase(races=billing_store.BALANCE_SWAP_ATTEMPTS)
    add_user(db, "U1", payment_mode="prepaid", prepaid_balance="100.00")

    with pytest.raises(PersistenceError):
        topup_balance("U1", Decimal("10.00"), client=db)

    assert db.rows("payments") == []
    assert db.rows("ledger_entries") == []
    assert db.row("users", "U1")["prepaid_balance"] == "350.00"


def test_rollback_reverses_only_its_own_balance_change(fake_db: FakeSupabase):
    _prepaid_user(fake_db, "100.00")

    with pytest.raises(NotFoundError):
        with UnitOfWork(fake_db) as uow:
            billing_store.adjust_prepaid_balance(uow, "U1", lambda current: current - Decimal("40.00"))
            topup_balance("U1", Decimal("25.00"))
            raise NotFoundError("Invoice", "INV1")

    assert fake_db.row("users", "U1")["prepaid_balance"] == "125.00"
