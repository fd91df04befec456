"""Audit trail of automated agent invocations."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from client_workflow_engine.domain.models import (
    Actor,
    AIAuditLog,
    AuditStatus,
    EventType,
    utc_iso_now,
)
from client_workflow_engine.errors import InvalidInputError
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class InvocationRecorder:
    """Filled in by the code running inside `AuditLogService.invocation`."""

    output_summary: str = ""
    raw_output: dict[str, Any] = field(default_factory=dict)
    strategy_action_id: str | None = None
    log: AIAuditLog | None = None


class AuditLogService:
    def __init__(self, *, store: EntityStore, events: EventLog) -> None:
        self._store = store
        self._events = events

    def log_invocation(
        self,
        agent_id: str,
        *,
        strategy_action_id: str | None = None,
        input_summary: str | None = None,
        output_summary: str | None = None,
        raw_input: Mapping[str, Any] | None = None,
        raw_output: Mapping[str, Any] | None = None,
        status: AuditStatus | str = AuditStatus.SUCCESS,
        duration_ms: int = 0,
    ) -> AIAuditLog:
        if not agent_id:
            raise InvalidInputError("agent_id is required")

        entry = self._store.create(
            AIAuditLog,
            {
                "agent_id": agent_id,
                "strategy_action_id": strategy_action_id,
                "input_summary": input_summary or "No summary",
                "output_summary": output_summary or "No summary",
                "raw_input": dict(raw_input or {}),
                "raw_output": dict(raw_output or {}),
                "status": status,
                "duration_ms": max(duration_ms, 0),
            },
        )

        if entry.status == AuditStatus.ERROR:
            self._events.append(
                event_type=EventType.AI_REASONING_TRIGGERED,
                source_entity_type="ai_agent_config",
                source_entity_id=agent_id,
                actor=Actor.system(),
                payload={"status": "error", "error": entry.output_summary, "audit_log_id": entry.id},
            )
        return entry

    @contextmanager
    def invocation(
        self,
        agent_id: str,
        *,
        input_summary: str,
        raw_input: Mapping[str, Any] | None = None,
    ) -> Iterator[InvocationRecorder]:
        """Time a block of agent work and log it as one audit entry.

        Exceptions are logged with status `error` and re-raised.
        """

        recorder = InvocationRecorder()
        started = time.monotonic()
        try:
            yield recorder
        except Exception as e:
            recorder.log = self.log_invocation(
                agent_id,
                strategy_action_id=recorder.strategy_action_id,
                input_summary=input_summary,
                output_summary=f"{type(e).__name__}: {e}",
                raw_input=raw_input,
                raw_output=recorder.raw_output,
                status=AuditStatus.ERROR,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            raise
        recorder.log = self.log_invocation(
            agent_id,
            strategy_action_id=recorder.strategy_action_id,
            input_summary=input_summary,
            output_summary=recorder.output_summary,
            raw_input=raw_input,
            raw_output=recorder.raw_output,
            status=AuditStatus.SUCCESS,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def submit_feedback(
        self,
        audit_log_id: str,
        *,
        actor: Actor,
        rating: int | None = None,
        comment: str | None = None,
        was_helpful: bool | None = None,
        was_implemented: bool | None = None,
    ) -> AIAuditLog:
        if rating is not None and not 1 <= rating <= 5:
            raise InvalidInputError("rating must be between 1 and 5")

        self._store.get(AIAuditLog, audit_log_id)
        logger.info("Recording AI feedback", extra={"audit_log_id": audit_log_id})
        return self._store.update(
            AIAuditLog,
            audit_log_id,
            {
                "was_approved": was_helpful,
                "user_feedback": {
                    "rating": rating,
                    "comment": comment,
                    "was_helpful": was_helpful,
                    "was_implemented": was_implemented,
                    "feedback_at": utc_iso_now(),
                    "feedback_by": actor.id,
                },
            },
        )
