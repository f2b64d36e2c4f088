"""Notification Dispatchers — webhook delivery and failure handling.

Invariants:
    - Payload POSTed as JSON exactly as RoundEvent.to_payload() renders it
    - Non-2xx and transport errors return False, never raise
    - build_dispatcher picks the webhook only when a URL is configured
"""

import json
from uuid import uuid4

import httpx

from mirrio.config import Settings
from mirrio.core.notifications import round_closed, round_opened
from mirrio.infrastructure.notifications import (
    LoggingNotificationDispatcher, WebhookNotificationDispatcher, build_dispatcher,
)

URL = "https://hooks.example.test/mirrio"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_webhook_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append((request.method, str(request.url), json.loads(request.content)))
        return httpx.Response(202)

    event = round_closed(uuid4(), uuid4(), uuid4(), uuid4())
    async with _client(handler) as client:
        ok = await WebhookNotificationDispatcher(URL, client=client).dispatch(event)

    assert ok
    assert received == [("POST", URL, event.to_payload())]


async def test_webhook_rejection_returns_false():
    async with _client(lambda request: httpx.Response(500)) as client:
        ok = await WebhookNotificationDispatcher(URL, client=client).dispatch(
            round_opened(uuid4(), uuid4(), uuid4()),
        )
    assert not ok


async def test_webhook_unreachable_returns_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        ok = await WebhookNotificationDispatcher(URL, client=client).dispatch(
            round_opened(uuid4(), uuid4(), uuid4()),
        )
    assert not ok


async def test_logging_dispatcher_always_succeeds(caplog):
    caplog.set_level("INFO")
    event = round_opened(uuid4(), uuid4(), uuid4())
    assert await LoggingNotificationDispatcher().dispatch(event)
    assert "round_opened" in caplog.text


def test_build_dispatcher_selects_by_configuration():
    assert isinstance(
        build_dispatcher(Settings(notification_webhook_url=None)),
        LoggingNotificationDispatcher,
    )
    webhook = build_dispatcher(Settings(
        notification_webhook_url=URL, notification_timeout_seconds=3,
    ))
    assert isinstance(webhook, WebhookNotificationDispatcher)
    assert webhook.timeout_seconds == 3
