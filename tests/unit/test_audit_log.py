from __future__ import annotations

import pytest

from client_workflow_engine.container import Engine
from client_workflow_engine.domain.models import Actor, AuditStatus, EventType
from client_workflow_engine.errors import InvalidInputError, NotFoundError


def test_successful_invocation_is_logged_without_event(engine: Engine) -> None:
    entry = engine.audit.log_invocation(
        "operator", input_summary="scan events", output_summary="nothing to do", duration_ms=12
    )

    assert entry.status == AuditStatus.SUCCESS
    assert entry.duration_ms == 12
    assert engine.events.by_type(EventType.AI_REASONING_TRIGGERED) == []


def test_failed_invocation_appends_reasoning_event(engine: Engine) -> None:
    entry = engine.audit.log_invocation("operator", output_summary="timeout", status="error")

    events = engine.events.by_type(EventType.AI_REASONING_TRIGGERED)
    assert len(events) == 1
    assert events[0].actor_type.value == "system"
    assert events[0].payload["audit_log_id"] == entry.id


def test_invocation_context_logs_success_and_errors(engine: Engine) -> None:
    with engine.audit.invocation("operator", input_summary="summarize") as run:
        run.output_summary = "done"
        run.raw_output = {"tokens": 42}
    assert run.log is not None
    assert run.log.status == AuditStatus.SUCCESS
    assert run.log.raw_output == {"tokens": 42}

    with pytest.raises(ValueError):
        with engine.audit.invocation("operator", input_summary="summarize") as failing:
            raise ValueError("bad prompt")
    assert failing.log is not None
    assert failing.log.status == AuditStatus.ERROR
    assert "bad prompt" in failing.log.output_summary


def test_submit_feedback(engine: Engine) -> None:
    entry = engine.audit.log_invocation("strategist", input_summary="plan")

    updated = engine.audit.submit_feedback(
        entry.id, actor=Actor.user("user-1"), rating=4, comment="useful", was_helpful=True
    )

    assert updated.was_approved is True
    assert updated.user_feedback["rating"] == 4
    assert updated.user_feedback["feedback_by"] == "user-1"


def test_submit_feedback_validation(engine: Engine) -> None:
    entry = engine.audit.log_invocation("strategist")
    with pytest.raises(InvalidInputError):
        engine.audit.submit_feedback(entry.id, actor=Actor.user("u"), rating=9)
    with pytest.raises(NotFoundError):
        engine.audit.submit_feedback("missing", actor=Actor.user("u"), rating=3)
    with pytest.raises(InvalidInputError):
        engine.audit.log_invocation("")
