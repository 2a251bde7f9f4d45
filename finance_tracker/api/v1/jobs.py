"""Scheduled job triggers, called by an external cron"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_chat_client
from finance_tracker.api.v1.schemas import JobResponse
from finance_tracker.infrastructure.clients.chat import ChatClient
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.invoice_ledger import InvoiceLedger
from finance_tracker.services.notification_dispatcher import NotificationDispatcher
from finance_tracker.services.reminders import ReminderGenerator

router = APIRouter()


@router.post("/jobs/invoice-statuses", response_model=JobResponse)
def run_invoice_status_update(db: Session = Depends(get_db)):
    """Close invoices past closing and flag overdue ones"""
    result = InvoiceLedger(db).update_statuses()
    return JobResponse(job="invoice-statuses", processed=result.processed, failed=result.failed, counts=result.counts)


@router.post("/jobs/due-reminders", response_model=JobResponse)
def run_due_reminders(db: Session = Depends(get_db)):
    """Emit 5-day, 1-day and due-today reminders; not idempotent within a day"""
    result = ReminderGenerator(db).generate_due_reminders()
    return JobResponse(job="due-reminders", processed=result.processed, failed=result.failed, counts=result.counts)


@router.post("/jobs/notifications/dispatch", response_model=JobResponse)
async def run_notification_dispatch(
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    chat_client: ChatClient = Depends(get_chat_client),
):
    """Mirror pending notifications to the chat channel"""
    result = await NotificationDispatcher(db, chat_client).dispatch_pending(limit)
    return JobResponse(
        job="notifications-dispatch", processed=result.processed, failed=result.failed, counts=result.counts
    )
