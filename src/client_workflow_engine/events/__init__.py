"""Event trail: the append-only log and the monitor notifier."""

from client_workflow_engine.events.log import EventLog
from client_workflow_engine.events.notifier import (
    HttpMonitorConsumer,
    InlineNotifier,
    Notifier,
    NullMonitorConsumer,
    ThreadedNotifier,
)

__all__ = [
    "EventLog",
    "HttpMonitorConsumer",
    "InlineNotifier",
    "Notifier",
    "NullMonitorConsumer",
    "ThreadedNotifier",
]
