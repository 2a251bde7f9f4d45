"""Card invoice lifecycle - generation, payments, advance payments and status scans"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.billing_cycle import compute_cycle_dates, compute_transaction_window
from finance_tracker.domain.exceptions import (
    AccountNotFoundError,
    CardNotFoundError,
    InvoiceNotFoundError,
    NoAmountDueError,
)
from finance_tracker.domain.invoices import (
    ZERO,
    calculate_minimum_payment,
    is_overdue,
    remaining_amount,
    resolve_payment_amount,
    should_close,
    to_money,
)
from finance_tracker.domain.models import (
    BatchResult,
    InvoiceStatus,
    NotificationType,
    PaymentMethod,
    PaymentType,
    TransactionWindow,
)
from finance_tracker.infrastructure.database.models import CardInvoice, CardTransaction
from finance_tracker.infrastructure.database.repositories import (
    CardRepository,
    InvoiceRepository,
    NotificationRepository,
    TransactionRepository,
)
from finance_tracker.infrastructure.observability.logging import log_batch_job
from finance_tracker.infrastructure.observability.metrics import batch_failure_counter, invoice_status_counter
from finance_tracker.services.payment_recorder import PaymentRecorder, PaymentResult

logger = logging.getLogger(__name__)


@dataclass
class InvoiceDetail:
    """Invoice with the transactions inside its window"""

    invoice: CardInvoice
    window: TransactionWindow
    transactions: List[CardTransaction]


class InvoiceLedger:
    """Owns one invoice per (card, month, year)"""

    def __init__(self, db: Session, minimum_payment_rate: Optional[Decimal] = None):
        self.db = db
        self.cards = CardRepository(db)
        self.transactions = TransactionRepository(db)
        self.invoices = InvoiceRepository(db)
        self.notifications = NotificationRepository(db)
        self.recorder = PaymentRecorder(db)
        self.minimum_payment_rate = minimum_payment_rate or settings.minimum_payment_rate

    def generate_or_refresh(
        self,
        user_id: str,
        card_id: uuid.UUID,
        month: int,
        year: int,
        profile_id: Optional[str] = None,
    ) -> CardInvoice:
        """
        Create the invoice for a cycle, or recompute it in place.

        The total is the sum of card transactions inside the cycle window and
        the minimum payment is a fixed share of it. Refreshing never touches
        the paid amount, so it is safe to call again after new purchases.

        Raises:
            CardNotFoundError: card missing or owned by someone else
        """
        card = self.cards.get_card(card_id, user_id, profile_id)
        if not card:
            raise CardNotFoundError("Card not found")

        cycle = self.cards.billing_cycle(card)
        dates = compute_cycle_dates(cycle, month, year)
        window = compute_transaction_window(cycle, month, year)

        total_amount = self.transactions.sum_amount_in_window(card.id, window)
        minimum_payment = calculate_minimum_payment(total_amount, self.minimum_payment_rate)

        invoice = self.invoices.get_for_cycle(card.id, month, year)
        if invoice:
            invoice.total_amount = total_amount
            invoice.minimum_payment = minimum_payment
            invoice.closing_date = dates.closing_date
            invoice.due_date = dates.due_date
            self.db.flush()
        else:
            invoice = self.invoices.create(
                card,
                month,
                year,
                closing_date=dates.closing_date,
                due_date=dates.due_date,
                total_amount=total_amount,
                minimum_payment=minimum_payment,
            )

        logger.info(
            "Invoice generated",
            extra={"invoice_id": str(invoice.id), "card_id": str(card.id), "total_amount": float(total_amount)},
        )
        return invoice

    def apply_payment(
        self,
        user_id: str,
        invoice_id: uuid.UUID,
        payment_type: PaymentType,
        amount: Optional[Decimal] = None,
        bank_account_id: Optional[uuid.UUID] = None,
        payment_method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
        profile_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> PaymentResult:
        """
        Pay an invoice.

        The invoice row is read under a lock and the amount is resolved and
        validated against what remains before anything is written; the row's
        version column rejects a concurrent writer that slipped past the lock.

        Raises:
            InvoiceNotFoundError, AlreadyPaidError, InvalidAmountError,
            ExceedsRemainingError, AccountNotFoundError,
            ConcurrentModificationError
        """
        invoice = self.invoices.get_for_update(invoice_id, user_id, profile_id)
        if not invoice:
            raise InvoiceNotFoundError("Invoice not found")

        remaining = remaining_amount(invoice.total_amount, invoice.paid_amount)
        payment_amount = resolve_payment_amount(payment_type, remaining, invoice.minimum_payment, amount)

        if bank_account_id and not self.cards.get_account(bank_account_id, user_id):
            raise AccountNotFoundError("Bank account not found")

        return self.recorder.record(
            invoice,
            amount=payment_amount,
            payment_type=payment_type,
            payment_date=today or date.today(),
            payment_method=payment_method,
            bank_account_id=bank_account_id,
            notes=notes,
        )

    def advance_payment(
        self,
        user_id: str,
        card_id: uuid.UUID,
        amount: Optional[Decimal],
        bank_account_id: Optional[uuid.UUID] = None,
        profile_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> PaymentResult:
        """Pay ahead on the current cycle's invoice, generating it if needed"""
        today = today or date.today()

        invoice = self.invoices.get_for_cycle(card_id, today.month, today.year)
        if not invoice or invoice.user_id != user_id or invoice.status != InvoiceStatus.OPEN.value:
            invoice = self.generate_or_refresh(user_id, card_id, today.month, today.year, profile_id)

        if to_money(invoice.total_amount) <= ZERO:
            raise NoAmountDueError("Nothing to pay on the current invoice")

        return self.apply_payment(
            user_id,
            invoice.id,
            PaymentType.ADVANCE,
            amount=amount,
            bank_account_id=bank_account_id,
            profile_id=profile_id,
            today=today,
        )

    def list_invoices(
        self,
        user_id: str,
        card_id: uuid.UUID,
        profile_id: Optional[str] = None,
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[CardInvoice], int]:
        return self.invoices.list_for_card(user_id, profile_id, card_id, page=page, limit=limit)

    def get_invoice(self, user_id: str, invoice_id: uuid.UUID, profile_id: Optional[str] = None) -> InvoiceDetail:
        invoice = self.invoices.get_owned(invoice_id, user_id, profile_id)
        if not invoice:
            raise InvoiceNotFoundError("Invoice not found")

        cycle = self.cards.billing_cycle(invoice.card)
        window = compute_transaction_window(cycle, invoice.reference_month, invoice.reference_year)
        return InvoiceDetail(
            invoice=invoice,
            window=window,
            transactions=self.transactions.list_card_transactions(invoice.card_id, window),
        )

    def get_current_invoice(
        self,
        user_id: str,
        card_id: uuid.UUID,
        profile_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> InvoiceDetail:
        today = today or date.today()
        invoice = self.invoices.get_for_cycle(card_id, today.month, today.year)
        if not invoice or invoice.user_id != user_id:
            invoice = self.generate_or_refresh(user_id, card_id, today.month, today.year, profile_id)
        return self.get_invoice(user_id, invoice.id, profile_id)

    def update_statuses(self, today: Optional[date] = None) -> BatchResult:
        """
        Scheduled scan closing and flagging invoices.

        Open invoices past closing but not yet due become CLOSED. Unpaid
        invoices past due with money remaining become OVERDUE and emit one
        PAYMENT_DUE notification each. Every invoice is committed on its own;
        a failing one is rolled back, counted and skipped.
        """
        today = today or date.today()
        result = BatchResult()

        for invoice in self.invoices.list_closable(today):
            self._run_item(result, "closed", invoice, today, self._close)

        for invoice in self.invoices.list_past_due(today):
            self._run_item(result, "overdue", invoice, today, self._flag_overdue)

        log_batch_job("update_invoice_statuses", result.processed, result.failed, result.counts)
        return result

    def _close(self, invoice: CardInvoice, today: date) -> bool:
        if not should_close(InvoiceStatus(invoice.status), invoice.closing_date, invoice.due_date, today):
            return False
        invoice.status = InvoiceStatus.CLOSED.value
        self.db.flush()
        return True

    def _flag_overdue(self, invoice: CardInvoice, today: date) -> bool:
        remaining = remaining_amount(invoice.total_amount, invoice.paid_amount)
        if not is_overdue(InvoiceStatus(invoice.status), invoice.due_date, remaining, today):
            return False

        invoice.status = InvoiceStatus.OVERDUE.value
        total = to_money(invoice.total_amount)
        self.notifications.emit(
            user_id=invoice.user_id,
            type=NotificationType.PAYMENT_DUE,
            title="Invoice overdue",
            message=(
                f"Your {invoice.card.name} invoice of {settings.currency_symbol} {total:.2f} is overdue! "
                "Pay it to avoid interest."
            ),
            related_amount=total,
        )
        self.db.flush()
        return True

    def _run_item(self, result: BatchResult, outcome: str, invoice: CardInvoice, today: date, action) -> None:
        """Apply one scan step to one invoice; any failure is rolled back and counted, never raised"""
        invoice_id = invoice.id
        try:
            applied = action(invoice, today)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            result.failed += 1
            batch_failure_counter.labels(job="update_invoice_statuses").inc()
            logger.error(f"Invoice status update failed: {e}", extra={"invoice_id": str(invoice_id)})
            return

        if not applied:
            return
        result.processed += 1
        result.bump(outcome)
        invoice_status_counter.labels(status=invoice.status).inc()
