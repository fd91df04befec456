"""Fire-and-forget dispatch of appended events to a monitoring consumer.

The primary write path has already committed its event by the time
`Notifier.dispatch` is called. Dispatch never blocks on the consumer and never
raises into the caller; failures are logged and the notification is lost.
Consumers that need completeness poll the event log instead.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import requests

from client_workflow_engine.domain.models import Event

logger = logging.getLogger(__name__)


class MonitorConsumer(Protocol):
    """Receives "an event occurred" signals. May raise; the notifier swallows."""

    def __call__(self, event_id: str) -> None: ...


class Notifier(Protocol):
    def dispatch(self, event: Event) -> None: ...


def _deliver(consumer: MonitorConsumer, event: Event) -> None:
    try:
        consumer(event.id)
    except Exception:
        logger.exception(
            "Monitor dispatch failed",
            extra={"event_id": event.id, "event_type": event.event_type.value},
        )


class ThreadedNotifier:
    """Runs each dispatch on its own daemon thread."""

    def __init__(self, consumer: MonitorConsumer) -> None:
        self._consumer = consumer

    def dispatch(self, event: Event) -> None:
        thread = threading.Thread(
            target=_deliver,
            name=f"monitor-dispatch-{event.id}",
            daemon=True,
            kwargs={"consumer": self._consumer, "event": event},
        )
        try:
            thread.start()
        except RuntimeError:
            logger.exception("Could not start monitor dispatch thread", extra={"event_id": event.id})


class InlineNotifier:
    """Same contract as ThreadedNotifier, delivered on the caller's thread."""

    def __init__(self, consumer: MonitorConsumer) -> None:
        self._consumer = consumer

    def dispatch(self, event: Event) -> None:
        _deliver(self._consumer, event)


class NullMonitorConsumer:
    """Used when no monitor endpoint is configured."""

    def __call__(self, event_id: str) -> None:
        logger.debug("No monitor configured; dropping dispatch", extra={"event_id": event_id})


class HttpMonitorConsumer:
    """POSTs `{"event_id": ...}` to the monitoring service."""

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("Monitor URL is required")
        self._url = url.strip()
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "client-workflow-engine"})

    def __call__(self, event_id: str) -> None:
        resp = self._session.post(self._url, json={"event_id": event_id}, timeout=self._timeout)
        resp.raise_for_status()
        logger.debug(
            "Monitor notified", extra={"event_id": event_id, "status_code": resp.status_code}
        )

    def close(self) -> None:
        self._session.close()
