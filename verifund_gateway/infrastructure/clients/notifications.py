"""Notification webhook client with exponential backoff retry logic"""

import asyncio
import logging
import httpx
from typing import Dict, Any
from verifund_gateway.config import settings
from verifund_gateway.domain.exceptions import NotificationDeliveryError
from verifund_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class NotificationClient:
    """Client for publishing committed state changes to the notification service"""

    def __init__(self, webhook_url: str | None = None, enabled: bool | None = None):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.enabled = settings.notifications_enabled if enabled is None else enabled
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def post_event(self, payload: Dict[str, Any]) -> None:
        """
        Send one event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base^attempt)
        - Retries on 5xx responses and network failures
        - 4xx responses fail on the first attempt

        Raises:
            NotificationDeliveryError: After the final failed attempt
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    rejected = isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500
                    if rejected or attempt >= self.max_retries:
                        raise NotificationDeliveryError(
                            f"{payload.get('event')} not delivered after {attempt} attempts"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def send_event(self, payload: Dict[str, Any]) -> bool:
        """
        Background-task entry point: committed state is already visible,
        so a delivery failure is logged rather than surfaced to the caller.
        """
        if not self.enabled:
            return False
        try:
            await self.post_event(payload)
            return True
        except NotificationDeliveryError as e:
            logging.error(f"Notification delivery failed: {e}", extra={"event": payload.get("event")})
            return False
