"""Appends invoice payments and recomputes the invoice balance"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from finance_tracker.domain.exceptions import ConcurrentModificationError
from finance_tracker.domain.invoices import remaining_amount, status_after_payment, to_money
from finance_tracker.domain.models import InvoiceStatus, InvoiceSummary, PaymentMethod, PaymentType
from finance_tracker.infrastructure.database.models import CardInvoice, InvoicePayment
from finance_tracker.infrastructure.database.repositories import CardRepository, PaymentRepository
from finance_tracker.infrastructure.observability.logging import log_payment
from finance_tracker.infrastructure.observability.metrics import invoice_status_counter, record_payment


@dataclass
class PaymentResult:
    payment: InvoicePayment
    invoice: InvoiceSummary


class PaymentRecorder:
    """Writes the payment record and the invoice/card side effects of one payment"""

    def __init__(self, db: Session):
        self.db = db
        self.payments = PaymentRepository(db)
        self.cards = CardRepository(db)

    def record(
        self,
        invoice: CardInvoice,
        amount: Decimal,
        payment_type: PaymentType,
        payment_date: date,
        payment_method: Optional[PaymentMethod] = None,
        bank_account_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> PaymentResult:
        """
        Persist an already-validated payment amount.

        The invoice must have been loaded for update by the caller. Status is
        re-evaluated from the amounts alone, so an OVERDUE invoice still
        becomes PAID once nothing remains. The card's available limit grows by
        the payment, capped at its credit limit.

        Raises:
            ConcurrentModificationError: the invoice row changed since it was read
        """
        payment = self.payments.create_payment(
            invoice,
            amount=amount,
            payment_type=payment_type,
            payment_date=payment_date,
            payment_method=payment_method,
            bank_account_id=bank_account_id,
            notes=notes,
        )

        previous_status = invoice.status
        invoice.paid_amount = to_money(invoice.paid_amount) + amount
        new_status = status_after_payment(
            InvoiceStatus(invoice.status), invoice.total_amount, invoice.paid_amount
        )
        invoice.status = new_status.value
        if new_status == InvoiceStatus.PAID:
            invoice.paid_at = datetime.now(timezone.utc)

        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConcurrentModificationError(
                "Invoice was modified by another request, retry the payment"
            ) from e

        if invoice.card is not None:
            self.cards.adjust_available_limit(invoice.card, amount)

        record_payment(payment_type.value, float(amount))
        if previous_status != invoice.status:
            invoice_status_counter.labels(status=invoice.status).inc()
        log_payment(invoice.id, invoice.user_id, payment_type.value, amount, invoice.status)

        return PaymentResult(
            payment=payment,
            invoice=InvoiceSummary(
                id=invoice.id,
                total_amount=to_money(invoice.total_amount),
                paid_amount=to_money(invoice.paid_amount),
                remaining_amount=remaining_amount(invoice.total_amount, invoice.paid_amount),
                status=new_status,
            ),
        )
