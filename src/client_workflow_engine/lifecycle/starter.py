"""Starting workflow instances from templates.

The lifecycle engine depends only on the `WorkflowStarter` protocol (template
chaining hands the start off to it). `TemplateWorkflowStarter` is the default
implementation: it materialises the whole stage/deliverable/task hierarchy up
front, releasing the first deliverable of the first stage.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

from client_workflow_engine.domain.models import (
    Actor,
    DeliverableInstance,
    DeliverableStatus,
    EventType,
    StageInstance,
    StageStatus,
    TaskInstance,
    TaskStatus,
    WorkflowInstance,
    WorkflowStatus,
    WorkflowTemplate,
    utc_iso_now,
)
from client_workflow_engine.domain.state_machine import HierarchyLevel, check_transition
from client_workflow_engine.errors import InvalidInputError
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.events.notifier import Notifier
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


class WorkflowStarter(Protocol):
    def start(
        self,
        *,
        client_id: str,
        template_id: str,
        actor: Actor,
        chained_from: str | None = None,
    ) -> WorkflowInstance: ...


class TemplateWorkflowStarter:
    def __init__(self, *, store: EntityStore, events: EventLog, notifier: Notifier) -> None:
        self._store = store
        self._events = events
        self._notifier = notifier

    def start(
        self,
        *,
        client_id: str,
        template_id: str,
        actor: Actor,
        chained_from: str | None = None,
    ) -> WorkflowInstance:
        if not client_id or not client_id.strip():
            raise InvalidInputError("client_id is required")
        if not template_id or not template_id.strip():
            raise InvalidInputError("workflow_template_id is required")

        template = self._store.get(WorkflowTemplate, template_id)
        now = utc_iso_now()
        workflow = self._store.create(
            WorkflowInstance,
            {
                "workflow_template_id": template.id,
                "client_id": client_id,
                "name": f"{template.name} - {datetime.now(tz=UTC).date().isoformat()}",
                "status": WorkflowStatus.NOT_STARTED,
                "started_at": now,
                "progress_percentage": 0,
                "chained_from_instance_id": chained_from,
            },
        )

        first_stage_id: str | None = None
        released: list[TaskInstance] = []
        for stage_index, stage_def in enumerate(
            sorted(template.stages, key=lambda s: s.sequence_order)
        ):
            is_first_stage = stage_index == 0
            stage = self._store.create(
                StageInstance,
                {
                    "workflow_instance_id": workflow.id,
                    "name": stage_def.name,
                    "sequence_order": stage_def.sequence_order,
                    "status": StageStatus.IN_PROGRESS if is_first_stage else StageStatus.PENDING,
                    "started_at": now if is_first_stage else None,
                },
            )
            if is_first_stage:
                first_stage_id = stage.id

            for deliverable_index, deliverable_def in enumerate(
                sorted(stage_def.deliverables, key=lambda d: d.sequence_order)
            ):
                is_active = is_first_stage and deliverable_index == 0
                deliverable = self._store.create(
                    DeliverableInstance,
                    {
                        "stage_instance_id": stage.id,
                        "workflow_instance_id": workflow.id,
                        "name": deliverable_def.name,
                        "sequence_order": deliverable_def.sequence_order,
                        "status": (
                            DeliverableStatus.IN_PROGRESS
                            if is_active
                            else DeliverableStatus.PENDING
                        ),
                        "started_at": now if is_active else None,
                    },
                )
                for task_def in sorted(deliverable_def.tasks, key=lambda t: t.sequence_order):
                    task = self._store.create(
                        TaskInstance,
                        {
                            "workflow_instance_id": workflow.id,
                            "deliverable_instance_id": deliverable.id,
                            "client_id": client_id,
                            "name": task_def.name,
                            "description": task_def.description,
                            "status": TaskStatus.NOT_STARTED,
                            "priority": task_def.priority,
                            "sequence_order": task_def.sequence_order,
                            "assigned_user_id": task_def.assigned_user_id or actor.id,
                            "is_ad_hoc": False,
                        },
                    )
                    if is_active:
                        released.append(task)

        check_transition(
            level=HierarchyLevel.WORKFLOW,
            current=workflow.status,
            to=WorkflowStatus.IN_PROGRESS,
        )
        workflow = self._store.update(
            WorkflowInstance,
            workflow.id,
            {"status": WorkflowStatus.IN_PROGRESS, "current_stage_id": first_stage_id},
        )

        started = self._events.append(
            event_type=EventType.WORKFLOW_INSTANCE_STARTED,
            source_entity_type=HierarchyLevel.WORKFLOW.value,
            source_entity_id=workflow.id,
            actor=actor,
            payload={
                "workflow_instance_id": workflow.id,
                "client_id": client_id,
                "workflow_template_id": template.id,
                "template_name": template.name,
                "chained_from_instance_id": chained_from,
            },
        )
        self._notifier.dispatch(started)

        if released:
            released_event = self._events.append(
                event_type=EventType.TASK_RELEASED,
                source_entity_type=HierarchyLevel.TASK.value,
                source_entity_id=released[0].id,
                actor=Actor.system(),
                payload={
                    "workflow_instance_id": workflow.id,
                    "client_id": client_id,
                    "task_count": len(released),
                },
            )
            self._notifier.dispatch(released_event)

        logger.info(
            "Workflow started",
            extra={
                "workflow_instance_id": workflow.id,
                "workflow_template_id": template.id,
                "client_id": client_id,
                "released_tasks": len(released),
            },
        )
        return workflow
