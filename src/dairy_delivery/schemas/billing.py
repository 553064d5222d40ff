"""Billing request/response schemas."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

BillingCycle = Literal["weekly", "monthly"]
PaymentMethod = Literal["cash", "card", "upi", "netbanking", "wallet"]


class TopupRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: PaymentMethod = "card"


class CycleInvoiceRequest(BaseModel):
    cycle: BillingCycle


class UserInvoiceRequest(BaseModel):
    period_start: date
    period_end: date
    cycle: BillingCycle = "weekly"

    @model_validator(mode="after")
    def _check_period(self) -> "UserInvoiceRequest":
        if self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")
        return self


class InvoiceModel(BaseModel):
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
    line_items: List[dict]

    @classmethod
    def from_domain(cls, invoice) -> "InvoiceModel":
        return cls(**asdict(invoice))


class PrepaidSettlementModel(BaseModel):
    status: Literal["paid", "partial", "unpaid"]
    applied_amount: Decimal
    shortfall: Decimal
    remaining_prepaid_balance: Decimal
    payment_id: Optional[str] = None


class InvoiceResultModel(BaseModel):
    invoice: InvoiceModel
    settlement: Optional[PrepaidSettlementModel] = None

    @classmethod
    def from_result(cls, result) -> "InvoiceResultModel":
        settlement = PrepaidSettlementModel(**asdict(result.settlement)) if result.settlement else None
        return cls(invoice=InvoiceModel.from_domain(result.invoice), settlement=settlement)


class BatchInvoiceResponse(BaseModel):
    cycle: BillingCycle
    period_start: date
    period_end: date
    generated: int
    failed_user_ids: List[str]
    invoices: List[InvoiceResultModel]

    @classmethod
    def from_result(cls, result) -> "BatchInvoiceResponse":
        return cls(
            cycle=result.cycle,
            period_start=result.period_start,
            period_end=result.period_end,
            generated=result.generated,
            failed_user_ids=result.failed_user_ids,
            invoices=[InvoiceResultModel.from_result(item) for item in result.invoices],
        )


class PaymentModel(BaseModel):
    id: str
    user_id: str
    amount: Decimal
    payment_method: str
    payment_type: str
    status: str
    invoice_id: Optional[str] = None
    notes: Optional[str] = None


class LedgerEntryModel(BaseModel):
    id: str
    entry_number: int
    entry_type: Literal["debit", "credit"]
    amount: Decimal
    running_balance: Decimal
    description: str
    reference_number: Optional[str] = None
    invoice_id: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[str] = None


class AccountModel(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    payment_mode: str
    prepaid_balance: Decimal


class BillingSummaryModel(BaseModel):
    user: AccountModel
    outstanding_balance: Decimal
    invoices: List[InvoiceModel]
    payments: List[PaymentModel]

    @classmethod
    def from_summary(cls, summary) -> "BillingSummaryModel":
        return cls(
            user=AccountModel(**asdict(summary.account)),
            outstanding_balance=summary.outstanding_balance,
            invoices=[InvoiceModel.from_domain(invoice) for invoice in summary.invoices],
            payments=[PaymentModel(**asdict(payment)) for payment in summary.payments],
        )
