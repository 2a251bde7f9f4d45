"""Delivers outbox notifications to the chat channel"""

import logging
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from finance_tracker.config import settings
from finance_tracker.domain.models import BatchResult
from finance_tracker.infrastructure.clients.chat import ChatClient
from finance_tracker.infrastructure.database.models import Notification
from finance_tracker.infrastructure.database.repositories import NotificationRepository
from finance_tracker.infrastructure.observability.metrics import notification_failure_counter

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Polls undelivered notifications and mirrors them to chat.

    Delivery is best effort: a failure only bumps the attempt counter and
    leaves the row pending for the next run, until it reaches the attempt
    cap and is no longer picked up. Invoice and budget state is
    never touched here.
    """

    def __init__(self, db: Session, client: Optional[ChatClient] = None):
        self.db = db
        self.client = client or ChatClient()
        self.notifications = NotificationRepository(db)

    async def dispatch_pending(self, limit: Optional[int] = None) -> BatchResult:
        result = BatchResult()

        pending = self.notifications.list_pending(
            limit or settings.notification_batch_size, settings.notification_max_attempts
        )
        for notification in pending:
            try:
                await self.client.send_notification(self._payload(notification))
            except httpx.HTTPError as e:
                notification_failure_counter.inc()
                logger.warning(
                    f"Notification delivery failed: {e}",
                    extra={"notification_id": str(notification.id), "user_id": notification.user_id},
                )
                self.notifications.mark_failed(notification)
                self.db.commit()
                result.failed += 1
                continue

            self.notifications.mark_delivered(notification)
            self.db.commit()
            result.processed += 1
            result.bump("delivered")

        return result

    @staticmethod
    def _payload(notification: Notification) -> dict:
        return {
            "notification_id": str(notification.id),
            "user_id": notification.user_id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "related_amount": float(notification.related_amount) if notification.related_amount is not None else None,
        }
