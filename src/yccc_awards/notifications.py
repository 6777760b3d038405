"""Submission notification sinks.

After a successful submit, each member operator is announced to a sink. Sinks
are fire-and-forget from the submitter's point of view: a failed delivery is
logged and never affects the stored submission.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Iterable, Optional, Protocol

import httpx

from .core.models import SubmissionNotification

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class NotificationSink(Protocol):
    async def send(self, notification: SubmissionNotification) -> None: ...


class LoggingNotifier:
    """Writes notifications to the log. Used when no webhook is configured."""

    async def send(self, notification: SubmissionNotification) -> None:
        logger.info(
            "Submission %s: %s for %s %d (station %s, claimed %d)",
            notification.status.value,
            notification.operator_callsign,
            notification.contest,
            notification.year,
            notification.station_callsign,
            notification.claimed_score,
        )


class WebhookNotifier:
    """POSTs each notification as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def send(self, notification: SubmissionNotification) -> None:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self._transport,
        ) as client:
            response = await client.post(self.url, json=notification.model_dump(mode="json"))
            response.raise_for_status()


def notifier_from_env() -> NotificationSink:
    """Webhook notifier when NOTIFY_WEBHOOK_URL is set, else the logging notifier."""
    url = os.environ.get("NOTIFY_WEBHOOK_URL", "")
    if not url:
        return LoggingNotifier()
    timeout = float(os.environ.get("NOTIFY_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
    logger.info("Submission notifications go to %s", url)
    return WebhookNotifier(url, timeout=timeout)


async def _deliver(sink: NotificationSink, notification: SubmissionNotification) -> bool:
    try:
        await sink.send(notification)
    except Exception as exc:
        logger.warning(
            "Notification for %s (%s %d) failed: %s",
            notification.operator_callsign, notification.contest, notification.year, exc,
        )
        return False
    return True


async def dispatch(sink: NotificationSink, notifications: Iterable[SubmissionNotification]) -> int:
    """Deliver notifications concurrently, swallowing and logging failures.

    All sends run at once, so a submit waits at most one sink timeout.
    Returns the delivered count.
    """
    results = await asyncio.gather(*(_deliver(sink, n) for n in notifications))
    return sum(results)
