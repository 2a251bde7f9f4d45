"""Chat channel client mirroring notifications, with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from finance_tracker.config import settings
from finance_tracker.infrastructure.observability.metrics import notification_latency_histogram


class ChatClient:
    """Client posting notification messages to the chat bot webhook"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        timeout: float | None = None,
    ):
        self.webhook_url = webhook_url or settings.chat_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.chat_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.chat_backoff_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def send_notification(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one notification to the chat channel.

        Retry strategy:
        - Exponential backoff: base, 2x base, 4x base ...
        - Retries on HTTP errors and network failures
        - Re-raises the last error once retries are exhausted
        - Always makes at least one attempt

        Args:
            payload: user_id, type, title, message and related amount
        """
        attempts = max(1, self.max_retries)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, attempts + 1):
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError):
                    if attempt >= attempts:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
