"""Append-only log of domain events.

The public contract is append + queries. Events are never updated; the only
removal path is `purge_for_workflow`, which exists for the hard-delete
maintenance operation and is not part of the normal write flow.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from client_workflow_engine.domain.models import Actor, ActorType, Event, EventType, utc_iso_now
from client_workflow_engine.errors import InvalidInputError
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


def _coerce_event_type(value: EventType | str | None) -> EventType:
    if isinstance(value, EventType):
        return value
    if not value:
        raise InvalidInputError("event_type is required")
    try:
        return EventType(value)
    except ValueError:
        raise InvalidInputError(f"Unknown event_type: {value!r}") from None


def _normalize_occurred_at(value: datetime | str | None) -> str:
    """Return a UTC ISO string with fixed precision so text order is time order."""

    if value is None:
        return utc_iso_now()
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidInputError(f"occurred_at is not an ISO timestamp: {value!r}") from None
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidInputError("occurred_at must include a UTC offset")
    return value.astimezone(UTC).isoformat(timespec="microseconds")


class EventLog:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def append(
        self,
        *,
        event_type: EventType | str,
        source_entity_type: str,
        source_entity_id: str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
        occurred_at: datetime | str | None = None,
    ) -> Event:
        """Validate and persist one event, returning it with its identifier."""

        etype = _coerce_event_type(event_type)
        if not source_entity_type or not source_entity_type.strip():
            raise InvalidInputError("source_entity_type is required")
        if not source_entity_id or not str(source_entity_id).strip():
            raise InvalidInputError("source_entity_id is required")
        if actor.type == ActorType.USER and not (actor.id or "").strip():
            raise InvalidInputError("actor_id is required for user events")
        timestamp = _normalize_occurred_at(occurred_at)

        event = self._store.create(
            Event,
            {
                "event_type": etype,
                "source_entity_type": source_entity_type,
                "source_entity_id": source_entity_id,
                "actor_type": actor.type,
                "actor_id": actor.id,
                "payload": dict(payload or {}),
                "occurred_at": timestamp,
            },
        )
        logger.debug(
            "Event appended",
            extra={
                "event_id": event.id,
                "event_type": etype.value,
                "source_entity_type": source_entity_type,
                "source_entity_id": source_entity_id,
            },
        )
        return event

    def get(self, event_id: str) -> Event:
        return self._store.get(Event, event_id)

    def all(self) -> list[Event]:
        return self._store.filter(Event, sort="occurred_at")

    def for_source(self, source_entity_type: str, source_entity_id: str) -> list[Event]:
        return self._store.filter(
            Event,
            {"source_entity_type": source_entity_type, "source_entity_id": source_entity_id},
            sort="occurred_at",
        )

    def by_type(self, event_type: EventType | str) -> list[Event]:
        return self._store.filter(
            Event, {"event_type": _coerce_event_type(event_type)}, sort="occurred_at"
        )

    def by_payload(self, field: str, value: object) -> list[Event]:
        return self._store.filter(Event, {f"payload.{field}": value}, sort="occurred_at")

    def purge_for_workflow(self, workflow_id: str) -> int:
        """Delete every event tied to a workflow. Maintenance use only."""

        doomed = {e.id: e for e in self.by_payload("workflow_instance_id", workflow_id)}
        for event in self.for_source("workflow_instance", workflow_id):
            doomed[event.id] = event
        for event_id in doomed:
            self._store.delete(Event, event_id)
        logger.info(
            "Purged workflow events",
            extra={"workflow_instance_id": workflow_id, "count": len(doomed)},
        )
        return len(doomed)
