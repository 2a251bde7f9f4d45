"""Due-date reminders for card invoices"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.invoices import ZERO, remaining_amount
from finance_tracker.domain.models import BatchResult, NotificationType
from finance_tracker.infrastructure.database.models import CardInvoice
from finance_tracker.infrastructure.database.repositories import InvoiceRepository, NotificationRepository
from finance_tracker.infrastructure.observability.logging import log_batch_job
from finance_tracker.infrastructure.observability.metrics import batch_failure_counter, invoice_reminder_counter

logger = logging.getLogger(__name__)

# (days before due date, notification type, title, message suffix)
REMINDER_SCHEDULE: List[Tuple[int, NotificationType, str, str]] = [
    (5, NotificationType.PAYMENT_REMINDER_5D, "Invoice due in 5 days", "is due in 5 days."),
    (1, NotificationType.PAYMENT_REMINDER_1D, "Invoice due tomorrow!", "is due tomorrow! Don't forget to pay it."),
    (0, NotificationType.PAYMENT_DUE, "Invoice due TODAY!", "is due TODAY! Pay now to avoid interest."),
]


class ReminderGenerator:
    """
    Emits reminders for invoices due in 5 days, tomorrow and today.

    Meant to run once a day. There is no de-duplication: running it twice on
    the same day emits every reminder twice, so the notification sink must
    tolerate at-least-once delivery.
    """

    def __init__(self, db: Session):
        self.db = db
        self.invoices = InvoiceRepository(db)
        self.notifications = NotificationRepository(db)

    def generate_due_reminders(self, today: Optional[date] = None) -> BatchResult:
        today = today or date.today()
        result = BatchResult()

        for days_ahead, notification_type, title, suffix in REMINDER_SCHEDULE:
            target = today + timedelta(days=days_ahead)
            for invoice in self.invoices.list_due_on(target):
                invoice_id = invoice.id
                try:
                    emitted = self._remind(invoice, notification_type, title, suffix)
                    self.db.commit()
                except Exception as e:
                    self.db.rollback()
                    result.failed += 1
                    batch_failure_counter.labels(job="due_reminders").inc()
                    logger.error(f"Reminder failed: {e}", extra={"invoice_id": str(invoice_id)})
                    continue

                if emitted:
                    result.processed += 1
                    result.bump(notification_type.value)
                    invoice_reminder_counter.labels(type=notification_type.value).inc()

        log_batch_job("due_reminders", result.processed, result.failed, result.counts)
        return result

    def _remind(self, invoice: CardInvoice, notification_type: NotificationType, title: str, suffix: str) -> bool:
        remaining = remaining_amount(invoice.total_amount, invoice.paid_amount)
        if remaining <= ZERO:
            return False

        card_name = invoice.card.name if invoice.card else ""
        self.notifications.emit(
            user_id=invoice.user_id,
            type=notification_type,
            title=title,
            message=f"{card_name} invoice of {settings.currency_symbol} {remaining:.2f} {suffix}".strip(),
            related_amount=remaining,
        )
        return True
