from __future__ import annotations

import pytest

from client_workflow_engine.domain.models import Actor, ActorType, EventType
from client_workflow_engine.errors import InvalidInputError
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.store.memory import InMemoryEntityStore


@pytest.fixture
def log() -> EventLog:
    return EventLog(InMemoryEntityStore())


def test_append_assigns_id_and_timestamp(log: EventLog) -> None:
    event = log.append(
        event_type=EventType.TASK_COMPLETED,
        source_entity_type="task_instance",
        source_entity_id="t1",
        actor=Actor.user("u1"),
        payload={"workflow_instance_id": "w1"},
    )

    assert event.id
    assert event.occurred_at
    assert event.actor_type == ActorType.USER
    assert log.get(event.id).payload == {"workflow_instance_id": "w1"}


def test_append_accepts_string_types_and_rejects_unknown(log: EventLog) -> None:
    event = log.append(
        event_type="task_blocked", source_entity_type="task_instance", source_entity_id="t1", actor=Actor.system()
    )
    assert event.event_type == EventType.TASK_BLOCKED

    with pytest.raises(InvalidInputError):
        log.append(
            event_type="task_exploded", source_entity_type="task_instance", source_entity_id="t1", actor=Actor.system()
        )


def test_user_events_require_actor_id(log: EventLog) -> None:
    with pytest.raises(InvalidInputError):
        log.append(
            event_type=EventType.TASK_STARTED,
            source_entity_type="task_instance",
            source_entity_id="t1",
            actor=Actor(type=ActorType.USER, id=None),
        )


def test_missing_source_is_rejected(log: EventLog) -> None:
    with pytest.raises(InvalidInputError):
        log.append(event_type=EventType.TASK_STARTED, source_entity_type="", source_entity_id="t1", actor=Actor.system())


def test_queries_by_source_type_and_payload(log: EventLog) -> None:
    for task_id, wf in [("t1", "w1"), ("t2", "w1"), ("t3", "w2")]:
        log.append(
            event_type=EventType.TASK_RELEASED,
            source_entity_type="task_instance",
            source_entity_id=task_id,
            actor=Actor.system(),
            payload={"workflow_instance_id": wf},
        )
    log.append(
        event_type=EventType.WORKFLOW_INSTANCE_CANCELLED,
        source_entity_type="workflow_instance",
        source_entity_id="w1",
        actor=Actor.user("u1"),
    )

    assert [e.source_entity_id for e in log.by_payload("workflow_instance_id", "w1")] == ["t1", "t2"]
    assert len(log.by_type(EventType.TASK_RELEASED)) == 3
    assert len(log.for_source("workflow_instance", "w1")) == 1
    assert [e.source_entity_id for e in log.all()] == ["t1", "t2", "t3", "w1"]


def test_purge_for_workflow_removes_payload_and_source_matches(log: EventLog) -> None:
    log.append(
        event_type=EventType.TASK_RELEASED,
        source_entity_type="task_instance",
        source_entity_id="t1",
        actor=Actor.system(),
        payload={"workflow_instance_id": "w1"},
    )
    log.append(
        event_type=EventType.WORKFLOW_INSTANCE_STARTED,
        source_entity_type="workflow_instance",
        source_entity_id="w1",
        actor=Actor.system(),
    )
    log.append(
        event_type=EventType.TASK_RELEASED,
        source_entity_type="task_instance",
        source_entity_id="t9",
        actor=Actor.system(),
        payload={"workflow_instance_id": "w2"},
    )

    assert log.purge_for_workflow("w1") == 2
    assert [e.source_entity_id for e in log.all()] == ["t9"]


def test_occurred_at_is_normalized_to_utc_for_ordering(log: EventLog) -> None:
    def append(occurred_at: str) -> None:
        log.append(
            event_type=EventType.TASK_STARTED,
            source_entity_type="task_instance",
            source_entity_id="t1",
            actor=Actor.system(),
            occurred_at=occurred_at,
        )

    append("2026-03-01T09:00:00Z")
    append("2026-03-01T10:00:00+02:00")  # 08:00 UTC
    append("2026-03-01T09:30:00+00:00")

    assert [e.occurred_at for e in log.all()] == [
        "2026-03-01T08:00:00.000000+00:00",
        "2026-03-01T09:00:00.000000+00:00",
        "2026-03-01T09:30:00.000000+00:00",
    ]


@pytest.mark.parametrize("occurred_at", ["not a date", "2026-03-01T09:00:00"])
def test_occurred_at_must_be_an_aware_timestamp(log: EventLog, occurred_at: str) -> None:
    with pytest.raises(InvalidInputError):
        log.append(
            event_type=EventType.TASK_STARTED,
            source_entity_type="task_instance",
            source_entity_id="t1",
            actor=Actor.system(),
            occurred_at=occurred_at,
        )
    assert log.all() == []
