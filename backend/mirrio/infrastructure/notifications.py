"""Notification Dispatchers — fire-and-forget delivery of round events.

Invariants:
    - dispatch() never raises: every failure is logged and reported as False
    - No retries here (the downstream dispatcher owns its retry policy)
    - Each delivery bounded by the configured timeout

Design Decisions:
    - Webhook over direct email: transport-level email is somebody else's service; we
      POST the JSON payload and let it fan out to members
    - LoggingNotificationDispatcher when no webhook is configured: local development and
      tests still see every transition in the logs
"""

import logging
from typing import Protocol

import httpx

from mirrio.config import Settings
from mirrio.core.notifications import RoundEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def dispatch(self, event: RoundEvent) -> bool: ...


class LoggingNotificationDispatcher:
    """Writes events to the log. Always succeeds."""

    async def dispatch(self, event: RoundEvent) -> bool:
        logger.info(
            f"Notification {event.event.value} for round {event.round_id}",
            extra={
                "event": event.event.value,
                "round_id": event.round_id,
                "group_id": event.group_id,
            },
        )
        return True


class WebhookNotificationDispatcher:
    """POSTs the event payload as JSON to a webhook."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def dispatch(self, event: RoundEvent) -> bool:
        payload = event.to_payload()
        extra = {
            "event": event.event.value,
            "round_id": event.round_id,
            "group_id": event.group_id,
        }
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, json=payload, timeout=self.timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Notification webhook rejected {event.event.value}: "
                f"HTTP {e.response.status_code}",
                extra=extra,
            )
            return False
        except httpx.HTTPError as e:
            logger.error(
                f"Notification webhook unreachable for {event.event.value}: {e}",
                extra=extra,
            )
            return False
        logger.info(f"Notification {event.event.value} delivered", extra=extra)
        return True


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    if settings.notification_webhook_url:
        return WebhookNotificationDispatcher(
            settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        )
    return LoggingNotificationDispatcher()
