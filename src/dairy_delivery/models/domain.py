"""Domain models for deliveries, routes and billing records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENT = Decimal("0.01")

STOP_STATUSES = ("pending", "in_transit", "delivered", "missed")
DELIVERY_STATUSES = ("scheduled", "delivered", "failed")
ROUTE_STATUSES = ("planned", "in_progress", "completed", "cancelled")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")
BILLING_CYCLES = ("weekly", "monthly")


def to_money(value: Any) -> Decimal:
    """Normalise a stored numeric value to a two-place Decimal."""

    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


@dataclass(slots=True, frozen=True)
class Point:
    latitude: float
    longitude: float


@dataclass(slots=True)
class Delivery:
    """A subscription delivery scheduled for one date."""

    id: str
    user_id: str
    delivery_date: date
    status: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    subscription_id: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    product_unit: Optional[str] = None
    address_id: Optional[str] = None
    area: Optional[str] = None
    location: Optional[Point] = None
    route_id: Optional[str] = None
    agent_id: Optional[str] = None
    invoice_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict, address: dict | None = None) -> "Delivery":
        address = address or {}
        latitude = address.get("latitude")
        longitude = address.get("longitude")
        location = None
        if latitude is not None and longitude is not None:
            location = Point(float(latitude), float(longitude))
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            delivery_date=parse_date(row["delivery_date"]),
            status=row.get("status", "scheduled"),
            quantity=int(row.get("quantity") or 0),
            unit_price=to_money(row.get("unit_price")),
            total_price=to_money(row.get("total_price")),
            subscription_id=row.get("subscription_id"),
            product_id=row.get("product_id"),
            product_name=row.get("product_name"),
            product_unit=row.get("product_unit"),
            address_id=row.get("address_id"),
            area=address.get("area"),
            location=location,
            route_id=row.get("route_id"),
            agent_id=row.get("agent_id"),
            invoice_id=row.get("invoice_id"),
        )


@dataclass(slots=True)
class Agent:
    id: str
    full_name: Optional[str] = None


@dataclass(slots=True)
class RouteStop:
    """One stop of a generated route, as persisted in ``route_stops``."""

    id: str
    route_id: str
    sequence: int
    status: str
    customer_id: str
    amount_due: Decimal
    distance_from_prev_km: float
    delivery_id: Optional[str] = None
    location: Optional[Point] = None
    product_lines: list[dict] = field(default_factory=list)
    arrived_at: Optional[str] = None
    delivered_at: Optional[str] = None
    delivery_notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "RouteStop":
        location = None
        if row.get("latitude") is not None and row.get("longitude") is not None:
            location = Point(float(row["latitude"]), float(row["longitude"]))
        return cls(
            id=row["id"],
            route_id=row["route_id"],
            sequence=int(row["sequence"]),
            status=row.get("status", "pending"),
            customer_id=row["user_id"],
            amount_due=to_money(row.get("total_amount")),
            distance_from_prev_km=float(row.get("distance_from_prev_km") or 0.0),
            delivery_id=row.get("subscription_delivery_id"),
            location=location,
            product_lines=list(row.get("delivery_items") or []),
            arrived_at=row.get("arrived_at"),
            delivered_at=row.get("delivered_at"),
            delivery_notes=row.get("delivery_notes"),
        )


@dataclass(slots=True)
class Route:
    id: str
    agent_id: str
    name: str
    route_date: date
    status: str
    total_distance_km: float
    estimated_duration_minutes: int
    stops: list[RouteStop] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict, stops: list[RouteStop] | None = None) -> "Route":
        return cls(
            id=row["id"],
            agent_id=row["agent_id"],
            name=row.get("route_name") or "",
            route_date=parse_date(row["route_date"]),
            status=row.get("status", "planned"),
            total_distance_km=float(row.get("total_distance") or 0.0),
            estimated_duration_minutes=int(row.get("estimated_duration") or 0),
            stops=sorted(stops or [], key=lambda stop: stop.sequence),
        )


@dataclass(slots=True)
class BillingAccount:
    """The billing-relevant view of a user."""

    id: str
    payment_mode: str
    prepaid_balance: Decimal
    full_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_prepaid(self) -> bool:
        return self.payment_mode == "prepaid"

    @classmethod
    def from_row(cls, row: dict) -> "BillingAccount":
        return cls(
            id=row["id"],
            payment_mode=row.get("payment_mode") or "postpaid",
            prepaid_balance=to_money(row.get("prepaid_balance")),
            full_name=row.get("full_name"),
            email=row.get("email"),
        )


@dataclass(slots=True)
class Invoice:
    id: str
    user_id: str
    invoice_number: str
    invoice_date: date
    due_date: date
    period_start: date
    period_end: date
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: str
    line_items: list[dict] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict) -> "Invoice":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            invoice_number=row["invoice_number"],
            invoice_date=parse_date(row["invoice_date"]),
            due_date=parse_date(row["due_date"]),
            period_start=parse_date(row["period_start"]),
            period_end=parse_date(row["period_end"]),
            subtotal=to_money(row.get("subtotal")),
            tax=to_money(row.get("tax")),
            total=to_money(row.get("total")),
            paid_amount=to_money(row.get("paid_amount")),
            balance=to_money(row.get("balance")),
            status=row.get("status", "draft"),
            line_items=list(row.get("line_items") or []),
        )


@dataclass(slots=True)
class LedgerEntry:
    id: str
    user_id: str
    entry_number: int
    entry_type: str
    amount: Decimal
    running_balance: Decimal
    description: str
    reference_number: Optional[str] = None
    invoice_id: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.entry_type == "debit" else -self.amount

    @classmethod
    def from_row(cls, row: dict) -> "LedgerEntry":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            entry_number=int(row["entry_number"]),
            entry_type=row["entry_type"],
            amount=to_money(row["amount"]),
            running_balance=to_money(row["running_balance"]),
            description=row.get("description") or "",
            reference_number=row.get("reference_number"),
            invoice_id=row.get("invoice_id"),
            payment_id=row.get("payment_id"),
            order_id=row.get("order_id"),
        )


@dataclass(slots=True)
class Payment:
    id: str
    user_id: str
    amount: Decimal
    payment_method: str
    payment_type: str
    status: str
    invoice_id: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Payment":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            amount=to_money(row["amount"]),
            payment_method=row["payment_method"],
            payment_type=row["payment_type"],
            status=row.get("status", "pending"),
            invoice_id=row.get("invoice_id"),
            notes=row.get("notes"),
        )
