"""Card invoice endpoints - listing, generation and payments"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_profile_id, get_user_id
from finance_tracker.api.v1.schemas import (
    AdvancePaymentRequest,
    CardTransactionSchema,
    GenerateInvoiceRequest,
    InvoiceDetailResponse,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceSummarySchema,
    PaginationSchema,
    PaymentRequest,
    PaymentResponse,
    PaymentSchema,
    PeriodSchema,
)
from finance_tracker.infrastructure.database.models import CardInvoice, InvoicePayment
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.invoice_ledger import InvoiceDetail, InvoiceLedger
from finance_tracker.services.payment_recorder import PaymentResult

router = APIRouter()


def _invoice_response(invoice: CardInvoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=str(invoice.id),
        card_id=str(invoice.card_id),
        reference_month=invoice.reference_month,
        reference_year=invoice.reference_year,
        closing_date=invoice.closing_date,
        due_date=invoice.due_date,
        total_amount=float(invoice.total_amount),
        paid_amount=float(invoice.paid_amount),
        remaining_amount=float(invoice.remaining_amount),
        minimum_payment=float(invoice.minimum_payment or 0),
        status=invoice.status,
        paid_at=invoice.paid_at,
        payments_count=len(invoice.payments),
    )


def _payment_schema(payment: InvoicePayment) -> PaymentSchema:
    return PaymentSchema(
        id=str(payment.id),
        amount=float(payment.amount),
        payment_date=payment.payment_date,
        payment_type=payment.payment_type,
        payment_method=payment.payment_method,
        bank_account_id=str(payment.bank_account_id) if payment.bank_account_id else None,
        notes=payment.notes,
    )


def _detail_response(detail: InvoiceDetail) -> InvoiceDetailResponse:
    invoice = detail.invoice
    return InvoiceDetailResponse(
        **_invoice_response(invoice).model_dump(),
        card_name=invoice.card.name,
        payments=[_payment_schema(p) for p in invoice.payments],
        transactions=[
            CardTransactionSchema(
                id=str(t.id),
                description=t.description,
                amount=float(t.amount),
                date=t.date,
                category=t.category,
                is_installment=t.is_installment,
                installment_number=t.installment_number,
                total_installments=t.total_installments,
            )
            for t in detail.transactions
        ],
        period=PeriodSchema(start_date=detail.window.start_date, end_date=detail.window.end_date),
    )


def _payment_response(result: PaymentResult) -> PaymentResponse:
    summary = result.invoice
    return PaymentResponse(
        payment=_payment_schema(result.payment),
        invoice=InvoiceSummarySchema(
            id=str(summary.id),
            total_amount=float(summary.total_amount),
            paid_amount=float(summary.paid_amount),
            remaining_amount=float(summary.remaining_amount),
            status=summary.status.value,
        ),
    )


@router.get("/cards/{card_id}/invoices", response_model=InvoiceListResponse)
def list_invoices(
    card_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Invoices of a card, newest cycle first"""
    invoices, total = InvoiceLedger(db).list_invoices(user_id, card_id, profile_id, page=page, limit=limit)
    return InvoiceListResponse(
        invoices=[_invoice_response(i) for i in invoices],
        pagination=PaginationSchema(page=page, limit=limit, total=total),
    )


@router.get("/cards/{card_id}/invoices/current", response_model=InvoiceDetailResponse)
def get_current_invoice(
    card_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Invoice of the current month, generated on first access"""
    detail = InvoiceLedger(db).get_current_invoice(user_id, card_id, profile_id)
    db.commit()
    return _detail_response(detail)


@router.post("/cards/{card_id}/invoices", response_model=InvoiceResponse)
def generate_invoice(
    card_id: uuid.UUID,
    body: GenerateInvoiceRequest,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Generate the invoice of a cycle, or refresh its totals"""
    invoice = InvoiceLedger(db).generate_or_refresh(user_id, card_id, body.month, body.year, profile_id)
    db.commit()
    return _invoice_response(invoice)


@router.post("/cards/{card_id}/advance-payment", response_model=PaymentResponse)
def advance_payment(
    card_id: uuid.UUID,
    body: AdvancePaymentRequest,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Pay ahead on the current cycle"""
    result = InvoiceLedger(db).advance_payment(
        user_id, card_id, body.amount, bank_account_id=body.bank_account_id, profile_id=profile_id
    )
    db.commit()
    return _payment_response(result)


@router.get("/invoices/{invoice_id}", response_model=InvoiceDetailResponse)
def get_invoice(
    invoice_id: uuid.UUID,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """Invoice with its payments and the transactions of its window"""
    return _detail_response(InvoiceLedger(db).get_invoice(user_id, invoice_id, profile_id))


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentResponse, status_code=201)
def pay_invoice(
    invoice_id: uuid.UUID,
    body: PaymentRequest,
    user_id: str = Depends(get_user_id),
    profile_id: Optional[str] = Depends(get_profile_id),
    db: Session = Depends(get_db),
):
    """
    Record a FULL, PARTIAL, MINIMUM or ADVANCE payment.

    Returns:
        The payment and the invoice totals after it
    """
    result = InvoiceLedger(db).apply_payment(
        user_id,
        invoice_id,
        body.payment_type,
        amount=body.amount,
        bank_account_id=body.bank_account_id,
        payment_method=body.payment_method,
        notes=body.notes,
        profile_id=profile_id,
    )
    db.commit()
    return _payment_response(result)
