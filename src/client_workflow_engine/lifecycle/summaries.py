"""Rolling stage summaries.

`complete_stage` awaits the summary because it is returned to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

from client_workflow_engine.domain.models import (
    DeliverableInstance,
    StageInstance,
    TaskInstance,
    TaskStatus,
    WorkflowInstance,
)
from client_workflow_engine.llm.provider import ChatProvider
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You write concise historical summaries of completed client workflow stages "
    "for long-term memory. Focus on outcomes, decisions and open risks. "
    "Use at most five sentences."
)


class SummaryGenerator(Protocol):
    def summarize(self, stage_id: str) -> str: ...


def _stage_tasks(store: EntityStore, stage_id: str) -> list[TaskInstance]:
    tasks: list[TaskInstance] = []
    deliverables = store.filter(
        DeliverableInstance, {"stage_instance_id": stage_id}, sort="sequence_order"
    )
    for deliverable in deliverables:
        tasks.extend(
            store.filter(
                TaskInstance,
                {"deliverable_instance_id": deliverable.id},
                sort="sequence_order",
            )
        )
    return tasks


class StaticSummaryGenerator:
    """Deterministic summary built from task counts. Used when no LLM is configured."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def summarize(self, stage_id: str) -> str:
        stage = self._store.get(StageInstance, stage_id)
        tasks = _stage_tasks(self._store, stage_id)
        done = [t for t in tasks if t.status == TaskStatus.COMPLETED]
        text = f"Stage '{stage.name}' completed with {len(done)}/{len(tasks)} tasks done."
        if done:
            text += " Completed: " + ", ".join(t.name for t in done) + "."
        blocked = [t for t in tasks if t.is_blocked]
        if blocked:
            text += " Still blocked: " + ", ".join(
                f"{t.name} ({t.blocker_reason})" for t in blocked
            ) + "."
        return text


class LLMSummaryGenerator:
    """Summarizes a stage's task trail with a chat model."""

    def __init__(self, store: EntityStore, provider: ChatProvider, *, max_tokens: int = 400) -> None:
        self._store = store
        self._provider = provider
        self._max_tokens = max_tokens

    def summarize(self, stage_id: str) -> str:
        stage = self._store.get(StageInstance, stage_id)
        workflow = self._store.get(WorkflowInstance, stage.workflow_instance_id)
        tasks = _stage_tasks(self._store, stage_id)
        logger.info(
            "Generating stage summary",
            extra={"stage_instance_id": stage_id, "task_count": len(tasks)},
        )

        context = {
            "client_id": workflow.client_id,
            "workflow": workflow.name,
            "stage": stage.name,
            "tasks": [
                {
                    "name": t.name,
                    "status": t.status.value,
                    "completed_at": t.completed_at,
                    "blocker_reason": t.blocker_reason,
                    "field_values": t.field_values,
                }
                for t in tasks
            ],
        }
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(context, ensure_ascii=False, indent=2)},
        ]
        return self._provider.chat(messages, max_tokens=self._max_tokens).strip()
