"""Billing endpoints for customers and admins."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import DairyDeliveryError
from ...schemas.billing import (
    BatchInvoiceResponse,
    BillingSummaryModel,
    CycleInvoiceRequest,
    InvoiceModel,
    InvoiceResultModel,
    LedgerEntryModel,
    PaymentModel,
    TopupRequest,
    UserInvoiceRequest,
)
from ...services.billing import (
    generate_cycle_invoices,
    generate_invoice,
    get_billing_summary,
    get_invoice,
    list_invoices,
    list_payments,
    topup_balance,
)
from ...services.billing.ledger import list_entries
from ..dependencies import Principal, require_role
from ..errors import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])

customer_only = require_role("customer")
admin_only = require_role("admin")


@router.get("/summary", response_model=BillingSummaryModel)
def summary(principal: Principal = Depends(customer_only)) -> BillingSummaryModel:
    try:
        return BillingSummaryModel.from_summary(get_billing_summary(principal.user_id))
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc


@router.post("/topup", response_model=PaymentModel, status_code=status.HTTP_201_CREATED)
def topup(payload: TopupRequest, principal: Principal = Depends(customer_only)) -> PaymentModel:
    try:
        payment = topup_balance(principal.user_id, payload.amount, payload.payment_method)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Error topping up balance for user {principal.user_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to top up balance: {str(exc)}",
        ) from exc
    return PaymentModel(**asdict(payment))


@router.get("/invoices", response_model=List[InvoiceModel])
def invoices(
    invoice_status: Optional[str] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(customer_only),
) -> List[InvoiceModel]:
    try:
        rows = list_invoices(principal.user_id, status=invoice_status, limit=limit, offset=offset)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    return [InvoiceModel.from_domain(invoice) for invoice in rows]


@router.get("/invoices/{invoice_id}", response_model=InvoiceModel)
def invoice_detail(invoice_id: str, principal: Principal = Depends(customer_only)) -> InvoiceModel:
    try:
        return InvoiceModel.from_domain(get_invoice(invoice_id, user_id=principal.user_id))
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc


@router.get("/payments", response_model=List[PaymentModel])
def payments(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(customer_only),
) -> List[PaymentModel]:
    try:
        rows = list_payments(principal.user_id, limit=limit, offset=offset)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    return [PaymentModel(**asdict(payment)) for payment in rows]


@router.get("/ledger", response_model=List[LedgerEntryModel])
def ledger(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(customer_only),
) -> List[LedgerEntryModel]:
    """Ledger entries, newest first."""
    try:
        entries = list_entries(principal.user_id, limit=limit, offset=offset)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    return [
        LedgerEntryModel(**{key: value for key, value in asdict(entry).items() if key != "user_id"})
        for entry in entries
    ]


@router.post("/admin/generate-invoices", response_model=BatchInvoiceResponse)
def admin_generate_invoices(
    payload: CycleInvoiceRequest,
    principal: Principal = Depends(admin_only),
) -> BatchInvoiceResponse:
    try:
        result = generate_cycle_invoices(payload.cycle)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Error generating {payload.cycle} invoices: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate invoices: {str(exc)}",
        ) from exc
    return BatchInvoiceResponse.from_result(result)


@router.post("/admin/users/{user_id}/invoice", response_model=Optional[InvoiceResultModel])
def admin_generate_user_invoice(
    user_id: str,
    payload: UserInvoiceRequest,
    principal: Principal = Depends(admin_only),
) -> Optional[InvoiceResultModel]:
    """Invoice one user for an explicit period; null when nothing is billable."""
    try:
        result = generate_invoice(user_id, payload.period_start, payload.period_end, payload.cycle)
    except DairyDeliveryError as exc:
        raise http_error(exc) from exc
    except Exception as exc:
        logger.exception(f"Error generating invoice for user {user_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate invoice: {str(exc)}",
        ) from exc
    return InvoiceResultModel.from_result(result) if result else None
