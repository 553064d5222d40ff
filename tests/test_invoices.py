from datetime import date
from decimal import Decimal

import pytest

from src.dairy_delivery.errors import NotFoundError, PersistenceError, ValidationError
from src.dairy_delivery.models.domain import Delivery
from src.dairy_delivery.services.billing import invoices as invoice_service
from src.dairy_delivery.services.billing.ledger import current_balance
from src.dairy_delivery.services.billing.summary import get_billing_summary, get_invoice, outstanding_balance
from tests.fakes import FakeSupabase, add_delivery, add_product, add_user

TODAY = date(2024, 6, 10)


def _seed_delivered(db: FakeSupabase, user_id: str, *days: str, unit_price: str = "30.00") -> None:
    for day in days:
        add_delivery(db, f"{user_id}-{day}", user_id=user_id, delivery_date=day, status="delivered", unit_price=unit_price)


def test_compute_totals_applies_tax_and_rounds():
    deliveries = [
        Delivery(
            id=str(index),
            user_id="U1",
            delivery_date=TODAY,
            status="delivered",
            quantity=1,
            unit_price=Decimal("33.33"),
            total_price=Decimal("33.33"),
        )
        for index in range(3)
    ]

    totals = invoice_service.compute_totals(deliveries, Decimal("0.05"))

    assert totals.subtotal == Decimal("99.99")
    assert totals.tax == Decimal("5.00")
    assert totals.total == Decimal("104.99")


def test_due_date_and_billing_period():
    assert invoice_service.due_date_for(TODAY, "weekly") == date(2024, 6, 17)
    assert invoice_service.due_date_for(TODAY, "monthly") == date(2024, 7, 10)
    assert invoice_service.billing_period("weekly", TODAY) == (date(2024, 6, 3), date(2024, 6, 9))
    assert invoice_service.billing_period("monthly", date(2024, 3, 31)) == (date(2024, 2, 29), date(2024, 3, 30))
    assert invoice_service.billing_period("monthly", date(2024, 1, 1)) == (date(2023, 12, 1), date(2023, 12, 31))

    with pytest.raises(ValidationError):
        invoice_service.billing_period("daily", TODAY)


def test_generate_invoice_bills_period_and_debits_ledger(fake_db: FakeSupabase):
    add_user(fake_db, "U1")
    add_product(fake_db, "P1", name="Toned Milk", unit="500ml")
    _seed_delivered(fake_db, "U1", "2024-06-03", "2024-06-05")
    _seed_delivered(fake_db, "U1", "2024-05-20")

    result = invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=TODAY)

    invoice = result.invoice
    assert result.settlement is None
    assert invoice.subtotal == Decimal("60.00")
    assert invoice.tax == Decimal("3.00")
    assert invoice.total == Decimal("63.00")
    assert invoice.balance == Decimal("63.00")
    assert invoice.status == "sent"
    assert invoice.due_date == date(2024, 6, 17)
    assert invoice.invoice_number.startswith("INV-20240610-")
    assert [item["delivery_id"] for item in invoice.line_items] == ["U1-2024-06-03", "U1-2024-06-05"]
    assert invoice.line_items[0]["description"] == "Toned Milk (1 500ml)"

    assert fake_db.row("subscription_deliveries", "U1-2024-06-03")["invoice_id"] == invoice.id
    assert fake_db.row("subscription_deliveries", "U1-2024-05-20")["invoice_id"] is None
    assert current_balance("U1") == Decimal("63.00")
    assert outstanding_balance("U1") == Decimal("63.00")


def test_generate_invoice_is_idempotent_for_a_period(fake_db: FakeSupabase):
    add_user(fake_db, "U1")
    _seed_delivered(fake_db, "U1", "2024-06-03")

    first = invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=TODAY)
    second = invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=TODAY)

    assert first is not None
    assert second is None
    assert len(fake_db.rows("invoices")) == 1
    assert len(fake_db.rows("ledger_entries")) == 1


def test_generate_invoice_without_deliveries_returns_none(fake_db: FakeSupabase):
    add_user(fake_db, "U1")

    assert invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9)) is None
    assert fake_db.rows("invoices") == []


def test_generate_invoice_validates_input(fake_db: FakeSupabase):
    add_user(fake_db, "U1")

    with pytest.raises(ValidationError):
        invoice_service.generate_invoice("U1", date(2024, 6, 9), date(2024, 6, 3))
    with pytest.raises(ValidationError):
        invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), "daily")
    with pytest.raises(NotFoundError):
        invoice_service.generate_invoice("nobody", date(2024, 6, 3), date(2024, 6, 9))


def test_failed_invoice_unit_leaves_nothing_behind(fake_db: FakeSupabase):
    add_user(fake_db, "U1")
    _seed_delivered(fake_db, "U1", "2024-06-03")
    fake_db.fail_on("ledger_entries", "insert")

    with pytest.raises(PersistenceError):
        invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=TODAY)

    assert fake_db.rows("invoices") == []
    assert fake_db.row("subscription_deliveries", "U1-2024-06-03")["invoice_id"] is None


def test_cycle_run_isolates_failing_users(fake_db: FakeSupabase):
    for user_id in ("U1", "U2", "U3"):
        add_user(fake_db, user_id)
        fake_db.add("subscriptions", {"id": f"S-{user_id}", "user_id": user_id, "billing_cycle": "weekly", "status": "active"})
        _seed_delivered(fake_db, user_id, "2024-06-04")
    fake_db.add("subscriptions", {"id": "S-U1b", "user_id": "U1", "billing_cycle": "weekly", "status": "active"})
    fake_db.add("subscriptions", {"id": "S-U4", "user_id": "U4", "billing_cycle": "monthly", "status": "active"})
    # U2's deliveries cannot be claimed.
    fake_db.tables["users"] = [row for row in fake_db.tables["users"] if row["id"] != "U2"]

    result = invoice_service.generate_weekly_invoices(today=TODAY)

    assert result.period_start == date(2024, 6, 3)
    assert result.period_end == date(2024, 6, 9)
    assert sorted(item.invoice.user_id for item in result.invoices) == ["U1", "U3"]
    assert result.failed_user_ids == ["U2"]
    assert result.generated == 2


def test_mark_overdue_invoices(fake_db: FakeSupabase):
    fake_db.add("invoices", {"id": "late", "status": "sent", "due_date": "2024-06-01", "balance": "20.00"})
    fake_db.add("invoices", {"id": "settled", "status": "sent", "due_date": "2024-06-01", "balance": "0.00"})
    fake_db.add("invoices", {"id": "current", "status": "sent", "due_date": "2024-06-20", "balance": "20.00"})
    fake_db.add("invoices", {"id": "paid", "status": "paid", "due_date": "2024-06-01", "balance": "0.00"})

    assert invoice_service.mark_overdue_invoices(TODAY) == 1

    assert fake_db.row("invoices", "late")["status"] == "overdue"
    assert fake_db.row("invoices", "current")["status"] == "sent"


def test_summary_and_invoice_ownership(fake_db: FakeSupabase):
    add_user(fake_db, "U1")
    add_user(fake_db, "U2")
    _seed_delivered(fake_db, "U1", "2024-06-03")
    invoice = invoice_service.generate_invoice("U1", date(2024, 6, 3), date(2024, 6, 9), today=TODAY).invoice

    summary = get_billing_summary("U1")

    assert summary.outstanding_balance == Decimal("31.50")
    assert [item.id for item in summary.invoices] == [invoice.id]
    assert get_invoice(invoice.id, user_id="U1").id == invoice.id
    with pytest.raises(NotFoundError):
        get_invoice(invoice.id, user_id="U2")
