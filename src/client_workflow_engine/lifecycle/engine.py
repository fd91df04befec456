"""Lifecycle engine for workflow -> stage -> deliverable -> task.

Every transition is a guarded read-then-write against the entity store: the
store offers no transactions, so each step re-reads the current status and
refuses illegal moves. Cascades (deliverable completion, stage -> workflow
completion, cancellation) run synchronously inside the triggering call.
Failures part-way through a cascade propagate; steps already applied stay
applied and the event trail shows how far it got.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from client_workflow_engine.domain.models import (
    Actor,
    DeliverableInstance,
    DeliverableStatus,
    Event,
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
from client_workflow_engine.domain.state_machine import (
    HierarchyLevel,
    check_transition,
    is_terminal,
)
from client_workflow_engine.errors import InvalidInputError, InvalidStateError
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.events.notifier import Notifier
from client_workflow_engine.lifecycle.starter import WorkflowStarter
from client_workflow_engine.lifecycle.summaries import SummaryGenerator
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)

AD_HOC_SEQUENCE_ORDER = 999

# Work that never produced output worth keeping; deleted on cancellation.
_DISPOSABLE_TASK_STATUSES = frozenset({TaskStatus.NOT_STARTED, TaskStatus.IN_PROGRESS})


@dataclass(frozen=True, slots=True)
class TaskCompletion:
    task: TaskInstance
    event: Event
    deliverable_completed: bool
    progress_percentage: int


@dataclass(frozen=True, slots=True)
class WorkflowCompletion:
    workflow: WorkflowInstance
    event: Event
    next_workflow: WorkflowInstance | None = None


@dataclass(frozen=True, slots=True)
class StageCompletion:
    stage: StageInstance
    summary: str
    event: Event
    workflow_completed: bool
    workflow: WorkflowCompletion | None = None
    next_stage: StageInstance | None = None


@dataclass(frozen=True, slots=True)
class CancellationResult:
    workflow: WorkflowInstance
    event: Event
    tasks_deleted: int
    stages_skipped: int
    deliverables_blocked: int


@dataclass(frozen=True, slots=True)
class DeletionResult:
    workflow_instance_id: str
    tasks_deleted: int
    deliverables_deleted: int
    stages_deleted: int
    events_deleted: int


@dataclass(frozen=True, slots=True)
class WorkflowStatusView:
    workflow: WorkflowInstance
    stages: list[StageInstance]
    deliverables: list[DeliverableInstance]
    tasks: list[TaskInstance]

    def to_json(self) -> dict[str, object]:
        return {
            "workflow": self.workflow.model_dump(mode="json"),
            "stages": [s.model_dump(mode="json") for s in self.stages],
            "deliverables": [d.model_dump(mode="json") for d in self.deliverables],
            "tasks": [t.model_dump(mode="json") for t in self.tasks],
        }


class LifecycleEngine:
    def __init__(
        self,
        *,
        store: EntityStore,
        events: EventLog,
        notifier: Notifier,
        summaries: SummaryGenerator,
        starter: WorkflowStarter,
    ) -> None:
        self._store = store
        self._events = events
        self._notifier = notifier
        self._summaries = summaries
        self._starter = starter

    # -- tasks ---------------------------------------------------------------

    def complete_task(
        self,
        task_id: str,
        *,
        actor: Actor,
        field_values: Mapping[str, Any] | None = None,
    ) -> TaskCompletion:
        task = self._store.get(TaskInstance, task_id)
        self._require_open_workflow(task)
        if task.status == TaskStatus.COMPLETED:
            raise InvalidStateError("Task already completed", details={"task_instance_id": task_id})
        check_transition(level=HierarchyLevel.TASK, current=task.status, to=TaskStatus.COMPLETED)

        task = self._store.update(
            TaskInstance,
            task_id,
            {
                "status": TaskStatus.COMPLETED,
                "completed_at": utc_iso_now(),
                "is_blocked": False,
                "blocker_reason": None,
                "field_values": {**task.field_values, **dict(field_values or {})},
            },
        )
        event = self._events.append(
            event_type=EventType.TASK_COMPLETED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={
                "task_name": task.name,
                "client_id": task.client_id,
                "workflow_instance_id": task.workflow_instance_id,
                "deliverable_instance_id": task.deliverable_instance_id,
            },
        )

        deliverable_completed = self._complete_deliverable_if_done(task)
        progress = self._refresh_progress(task.workflow_instance_id)
        logger.info(
            "Task completed",
            extra={
                "task_instance_id": task.id,
                "workflow_instance_id": task.workflow_instance_id,
                "deliverable_completed": deliverable_completed,
                "progress_percentage": progress,
            },
        )
        return TaskCompletion(
            task=task,
            event=event,
            deliverable_completed=deliverable_completed,
            progress_percentage=progress,
        )

    def block_task(self, task_id: str, reason: str, *, actor: Actor) -> TaskInstance:
        if not reason or not reason.strip():
            raise InvalidInputError("blocker_reason is required")

        task = self._store.get(TaskInstance, task_id)
        self._require_open_workflow(task)
        # Re-blocking an already blocked task just records the new reason.
        if task.status != TaskStatus.BLOCKED:
            check_transition(level=HierarchyLevel.TASK, current=task.status, to=TaskStatus.BLOCKED)

        task = self._store.update(
            TaskInstance,
            task_id,
            {"status": TaskStatus.BLOCKED, "is_blocked": True, "blocker_reason": reason.strip()},
        )
        event = self._events.append(
            event_type=EventType.TASK_BLOCKED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={
                "task_name": task.name,
                "blocker_reason": task.blocker_reason,
                "client_id": task.client_id,
                "workflow_instance_id": task.workflow_instance_id,
            },
        )
        self._notifier.dispatch(event)
        logger.info(
            "Task blocked",
            extra={"task_instance_id": task.id, "blocker_reason": task.blocker_reason},
        )
        return task

    def unblock_task(self, task_id: str, *, actor: Actor) -> TaskInstance:
        task = self._store.get(TaskInstance, task_id)
        self._require_open_workflow(task)
        if task.status != TaskStatus.BLOCKED:
            raise InvalidStateError("Task is not blocked", details={"task_instance_id": task_id})
        check_transition(level=HierarchyLevel.TASK, current=task.status, to=TaskStatus.IN_PROGRESS)

        previous_reason = task.blocker_reason
        task = self._store.update(
            TaskInstance,
            task_id,
            {"status": TaskStatus.IN_PROGRESS, "is_blocked": False, "blocker_reason": None},
        )
        self._events.append(
            event_type=EventType.TASK_UNBLOCKED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={
                "task_name": task.name,
                "previous_blocker_reason": previous_reason,
                "workflow_instance_id": task.workflow_instance_id,
            },
        )
        return task

    def start_task(self, task_id: str, *, actor: Actor) -> TaskInstance:
        task = self._store.get(TaskInstance, task_id)
        self._require_open_workflow(task)
        check_transition(level=HierarchyLevel.TASK, current=task.status, to=TaskStatus.IN_PROGRESS)
        if task.status == TaskStatus.BLOCKED:
            raise InvalidStateError(
                "Blocked tasks must be unblocked, not started",
                details={"task_instance_id": task_id},
            )

        task = self._store.update(
            TaskInstance,
            task_id,
            {"status": TaskStatus.IN_PROGRESS, "started_at": task.started_at or utc_iso_now()},
        )
        self._events.append(
            event_type=EventType.TASK_STARTED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={"task_name": task.name, "workflow_instance_id": task.workflow_instance_id},
        )
        return task

    def reassign_task(self, task_id: str, new_user_id: str, *, actor: Actor) -> TaskInstance:
        if not new_user_id or not new_user_id.strip():
            raise InvalidInputError("new_user_id is required")

        task = self._store.get(TaskInstance, task_id)
        self._require_open_workflow(task)
        previous = task.assigned_user_id
        task = self._store.update(TaskInstance, task_id, {"assigned_user_id": new_user_id})
        self._events.append(
            event_type=EventType.TASK_REASSIGNED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={
                "new_user_id": new_user_id,
                "previous_user_id": previous,
                "workflow_instance_id": task.workflow_instance_id,
            },
        )
        return task

    def create_ad_hoc_task(
        self,
        workflow_id: str,
        name: str,
        *,
        actor: Actor,
        description: str = "",
        assigned_user_id: str | None = None,
        priority: str = "normal",
        deliverable_id: str | None = None,
    ) -> TaskInstance:
        if not name or not name.strip():
            raise InvalidInputError("Task name is required")

        workflow = self._store.get(WorkflowInstance, workflow_id)
        if is_terminal(level=HierarchyLevel.WORKFLOW, status=workflow.status):
            raise InvalidStateError(
                f"Cannot add tasks to a {workflow.status.value} workflow",
                details={"workflow_instance_id": workflow_id},
            )
        if deliverable_id is not None:
            deliverable = self._store.get(DeliverableInstance, deliverable_id)
            if deliverable.workflow_instance_id != workflow_id:
                raise InvalidInputError("Deliverable belongs to a different workflow")

        task = self._store.create(
            TaskInstance,
            {
                "workflow_instance_id": workflow_id,
                "deliverable_instance_id": deliverable_id,
                "client_id": workflow.client_id,
                "name": name.strip(),
                "description": description,
                "status": TaskStatus.NOT_STARTED,
                "priority": priority,
                "assigned_user_id": assigned_user_id or actor.id,
                "is_ad_hoc": True,
                "sequence_order": AD_HOC_SEQUENCE_ORDER,
            },
        )
        self._events.append(
            event_type=EventType.TASK_RELEASED,
            source_entity_type=HierarchyLevel.TASK.value,
            source_entity_id=task.id,
            actor=actor,
            payload={"is_ad_hoc": True, "workflow_instance_id": workflow_id},
        )
        return task

    def delete_task(self, task_id: str) -> TaskInstance:
        """Hard delete without lifecycle checks (compensation path)."""

        task = self._store.get(TaskInstance, task_id)
        self._store.delete(TaskInstance, task_id)
        logger.info(
            "Task deleted",
            extra={"task_instance_id": task_id, "workflow_instance_id": task.workflow_instance_id},
        )
        return task

    # -- stages --------------------------------------------------------------

    def complete_stage(self, stage_id: str, *, actor: Actor) -> StageCompletion:
        stage = self._store.get(StageInstance, stage_id)
        if stage.status == StageStatus.COMPLETED:
            raise InvalidStateError("Stage already completed", details={"stage_instance_id": stage_id})
        check_transition(level=HierarchyLevel.STAGE, current=stage.status, to=StageStatus.COMPLETED)

        self._store.update(
            StageInstance,
            stage_id,
            {
                "status": StageStatus.COMPLETED,
                "completed_at": utc_iso_now(),
                "progress_percentage": 100,
            },
        )
        summary = self._summaries.summarize(stage_id)
        stage = self._store.update(StageInstance, stage_id, {"summary": summary})

        event = self._events.append(
            event_type=EventType.STAGE_COMPLETED,
            source_entity_type=HierarchyLevel.STAGE.value,
            source_entity_id=stage.id,
            actor=actor,
            payload={"workflow_instance_id": stage.workflow_instance_id, "stage_name": stage.name},
        )
        self._notifier.dispatch(event)

        siblings = self._store.filter(
            StageInstance,
            {"workflow_instance_id": stage.workflow_instance_id},
            sort="sequence_order",
        )
        all_completed = all(s.status == StageStatus.COMPLETED for s in siblings)

        workflow_result: WorkflowCompletion | None = None
        next_stage: StageInstance | None = None
        if all_completed:
            workflow = self._store.get(WorkflowInstance, stage.workflow_instance_id)
            if is_terminal(level=HierarchyLevel.WORKFLOW, status=workflow.status):
                logger.warning(
                    "All stages completed but workflow is already terminal",
                    extra={"workflow_instance_id": workflow.id, "status": workflow.status.value},
                )
            else:
                workflow_result = self.complete_workflow(stage.workflow_instance_id, actor=actor)
        else:
            next_stage = self._enter_next_stage(siblings)

        return StageCompletion(
            stage=stage,
            summary=summary,
            event=event,
            workflow_completed=workflow_result is not None,
            workflow=workflow_result,
            next_stage=next_stage,
        )

    # -- workflows -----------------------------------------------------------

    def complete_workflow(self, workflow_id: str, *, actor: Actor) -> WorkflowCompletion:
        workflow = self._store.get(WorkflowInstance, workflow_id)
        if workflow.status == WorkflowStatus.COMPLETED:
            raise InvalidStateError(
                "Workflow already completed", details={"workflow_instance_id": workflow_id}
            )
        check_transition(
            level=HierarchyLevel.WORKFLOW, current=workflow.status, to=WorkflowStatus.COMPLETED
        )

        workflow = self._store.update(
            WorkflowInstance,
            workflow_id,
            {
                "status": WorkflowStatus.COMPLETED,
                "progress_percentage": 100,
                "completed_at": utc_iso_now(),
            },
        )
        event = self._events.append(
            event_type=EventType.WORKFLOW_INSTANCE_COMPLETED,
            source_entity_type=HierarchyLevel.WORKFLOW.value,
            source_entity_id=workflow.id,
            actor=actor,
            payload={
                "workflow_instance_id": workflow.id,
                "client_id": workflow.client_id,
                "workflow_name": workflow.name,
            },
        )
        self._notifier.dispatch(event)
        logger.info("Workflow completed", extra={"workflow_instance_id": workflow.id})

        next_workflow = self._chain_next_workflow(workflow, actor=actor)
        if next_workflow is not None:
            workflow = self._store.update(
                WorkflowInstance, workflow.id, {"next_workflow_instance_id": next_workflow.id}
            )
        return WorkflowCompletion(workflow=workflow, event=event, next_workflow=next_workflow)

    def cancel_workflow(self, workflow_id: str, *, actor: Actor) -> CancellationResult:
        workflow = self._store.get(WorkflowInstance, workflow_id)
        if is_terminal(level=HierarchyLevel.WORKFLOW, status=workflow.status):
            raise InvalidStateError(
                f"Workflow already {workflow.status.value}",
                details={"workflow_instance_id": workflow_id},
            )
        check_transition(
            level=HierarchyLevel.WORKFLOW, current=workflow.status, to=WorkflowStatus.CANCELLED
        )

        # Tasks first so the event can carry the exact deleted count.
        disposable = self._store.filter(
            TaskInstance,
            {"workflow_instance_id": workflow_id, "status": _DISPOSABLE_TASK_STATUSES},
        )
        for task in disposable:
            self._store.delete(TaskInstance, task.id)

        # Terminal status as early as possible to narrow the window where a
        # reader sees an in-progress workflow with no active tasks.
        workflow = self._store.update(
            WorkflowInstance,
            workflow_id,
            {"status": WorkflowStatus.CANCELLED, "completed_at": utc_iso_now()},
        )

        stages_skipped = 0
        for stage in self._store.filter(StageInstance, {"workflow_instance_id": workflow_id}):
            if stage.status in {StageStatus.COMPLETED, StageStatus.SKIPPED}:
                continue
            check_transition(level=HierarchyLevel.STAGE, current=stage.status, to=StageStatus.SKIPPED)
            self._store.update(StageInstance, stage.id, {"status": StageStatus.SKIPPED})
            stages_skipped += 1

        deliverables_blocked = 0
        for deliverable in self._store.filter(
            DeliverableInstance, {"workflow_instance_id": workflow_id}
        ):
            if deliverable.status in {DeliverableStatus.COMPLETED, DeliverableStatus.BLOCKED}:
                continue
            self._store.update(
                DeliverableInstance, deliverable.id, {"status": DeliverableStatus.BLOCKED}
            )
            deliverables_blocked += 1

        event = self._events.append(
            event_type=EventType.WORKFLOW_INSTANCE_CANCELLED,
            source_entity_type=HierarchyLevel.WORKFLOW.value,
            source_entity_id=workflow_id,
            actor=actor,
            payload={
                "workflow_instance_id": workflow_id,
                "client_id": workflow.client_id,
                "tasks_deleted": len(disposable),
            },
        )
        logger.info(
            "Workflow cancelled",
            extra={
                "workflow_instance_id": workflow_id,
                "tasks_deleted": len(disposable),
                "stages_skipped": stages_skipped,
                "deliverables_blocked": deliverables_blocked,
            },
        )
        return CancellationResult(
            workflow=workflow,
            event=event,
            tasks_deleted=len(disposable),
            stages_skipped=stages_skipped,
            deliverables_blocked=deliverables_blocked,
        )

    def delete_workflow(self, workflow_id: str, *, actor: Actor) -> DeletionResult:
        """Irreversibly purge a workflow and everything under it.

        Operator cleanup, not a lifecycle transition: no status checks.
        """

        self._store.get(WorkflowInstance, workflow_id)
        scope = {"workflow_instance_id": workflow_id}

        tasks = self._store.filter(TaskInstance, scope)
        for task in tasks:
            self._store.delete(TaskInstance, task.id)

        deliverables = self._store.filter(DeliverableInstance, scope)
        for deliverable in deliverables:
            self._store.delete(DeliverableInstance, deliverable.id)

        stages = self._store.filter(StageInstance, scope)
        for stage in stages:
            self._store.delete(StageInstance, stage.id)

        events_deleted = self._events.purge_for_workflow(workflow_id)
        self._store.delete(WorkflowInstance, workflow_id)

        logger.warning(
            "Workflow deleted",
            extra={
                "workflow_instance_id": workflow_id,
                "actor_type": actor.type.value,
                "actor_id": actor.id,
            },
        )
        return DeletionResult(
            workflow_instance_id=workflow_id,
            tasks_deleted=len(tasks),
            deliverables_deleted=len(deliverables),
            stages_deleted=len(stages),
            events_deleted=events_deleted,
        )

    def get_workflow_status(self, workflow_id: str) -> WorkflowStatusView:
        workflow = self._store.get(WorkflowInstance, workflow_id)
        scope = {"workflow_instance_id": workflow_id}
        return WorkflowStatusView(
            workflow=workflow,
            stages=self._store.filter(StageInstance, scope, sort="sequence_order"),
            deliverables=self._store.filter(DeliverableInstance, scope, sort="sequence_order"),
            tasks=self._store.filter(TaskInstance, scope, sort="sequence_order"),
        )

    # -- cascade helpers -----------------------------------------------------

    def _require_open_workflow(self, task: TaskInstance) -> WorkflowInstance:
        workflow = self._store.get(WorkflowInstance, task.workflow_instance_id)
        if is_terminal(level=HierarchyLevel.WORKFLOW, status=workflow.status):
            raise InvalidStateError(
                f"Task belongs to a {workflow.status.value} workflow",
                details={"task_instance_id": task.id, "workflow_instance_id": workflow.id},
            )
        return workflow

    def _complete_deliverable_if_done(self, task: TaskInstance) -> bool:
        if task.deliverable_instance_id is None:
            return False

        deliverable = self._store.get(DeliverableInstance, task.deliverable_instance_id)
        if deliverable.status == DeliverableStatus.COMPLETED:
            return False

        siblings = self._store.filter(TaskInstance, {"deliverable_instance_id": deliverable.id})
        if not all(t.status == TaskStatus.COMPLETED for t in siblings):
            return False

        check_transition(
            level=HierarchyLevel.DELIVERABLE,
            current=deliverable.status,
            to=DeliverableStatus.COMPLETED,
        )
        deliverable = self._store.update(
            DeliverableInstance,
            deliverable.id,
            {"status": DeliverableStatus.COMPLETED, "completed_at": utc_iso_now()},
        )
        self._events.append(
            event_type=EventType.DELIVERABLE_COMPLETED,
            source_entity_type=HierarchyLevel.DELIVERABLE.value,
            source_entity_id=deliverable.id,
            actor=Actor.system(),
            payload={
                "workflow_instance_id": deliverable.workflow_instance_id,
                "stage_instance_id": deliverable.stage_instance_id,
                "client_id": task.client_id,
            },
        )

        pending = self._store.filter(
            DeliverableInstance,
            {"stage_instance_id": deliverable.stage_instance_id, "status": DeliverableStatus.PENDING},
            sort="sequence_order",
        )
        upcoming = [d for d in pending if d.sequence_order > deliverable.sequence_order]
        if upcoming:
            self._release_deliverable(upcoming[0])
        return True

    def _release_deliverable(self, deliverable: DeliverableInstance) -> DeliverableInstance:
        check_transition(
            level=HierarchyLevel.DELIVERABLE,
            current=deliverable.status,
            to=DeliverableStatus.IN_PROGRESS,
        )
        deliverable = self._store.update(
            DeliverableInstance,
            deliverable.id,
            {"status": DeliverableStatus.IN_PROGRESS, "started_at": utc_iso_now()},
        )
        for task in self._store.filter(
            TaskInstance, {"deliverable_instance_id": deliverable.id}, sort="sequence_order"
        ):
            self._events.append(
                event_type=EventType.TASK_RELEASED,
                source_entity_type=HierarchyLevel.TASK.value,
                source_entity_id=task.id,
                actor=Actor.system(),
                payload={
                    "task_name": task.name,
                    "assigned_user_id": task.assigned_user_id,
                    "workflow_instance_id": task.workflow_instance_id,
                },
            )
        return deliverable

    def _enter_next_stage(self, siblings: list[StageInstance]) -> StageInstance | None:
        if any(s.status == StageStatus.IN_PROGRESS for s in siblings):
            return None
        pending = [s for s in siblings if s.status == StageStatus.PENDING]
        if not pending:
            return None

        stage = self._store.update(
            StageInstance,
            pending[0].id,
            {"status": StageStatus.IN_PROGRESS, "started_at": utc_iso_now()},
        )
        self._store.update(
            WorkflowInstance, stage.workflow_instance_id, {"current_stage_id": stage.id}
        )
        self._events.append(
            event_type=EventType.STAGE_ENTERED,
            source_entity_type=HierarchyLevel.STAGE.value,
            source_entity_id=stage.id,
            actor=Actor.system(),
            payload={"workflow_instance_id": stage.workflow_instance_id, "stage_name": stage.name},
        )

        first = self._store.filter(
            DeliverableInstance,
            {"stage_instance_id": stage.id, "status": DeliverableStatus.PENDING},
            sort="sequence_order",
            limit=1,
        )
        if first:
            self._release_deliverable(first[0])
        return stage

    def _refresh_progress(self, workflow_id: str) -> int:
        workflow = self._store.get(WorkflowInstance, workflow_id)
        if is_terminal(level=HierarchyLevel.WORKFLOW, status=workflow.status):
            return workflow.progress_percentage

        tasks = self._store.filter(TaskInstance, {"workflow_instance_id": workflow_id})
        if not tasks:
            return workflow.progress_percentage

        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        # 100 is reserved for workflow completion.
        progress = min((completed * 100 + len(tasks) // 2) // len(tasks), 99)
        if progress != workflow.progress_percentage:
            self._store.update(WorkflowInstance, workflow_id, {"progress_percentage": progress})
        return progress

    def _chain_next_workflow(
        self, workflow: WorkflowInstance, *, actor: Actor
    ) -> WorkflowInstance | None:
        if workflow.next_workflow_instance_id:
            logger.info(
                "Workflow already chained; not starting another",
                extra={
                    "workflow_instance_id": workflow.id,
                    "next_workflow_instance_id": workflow.next_workflow_instance_id,
                },
            )
            return None
        if not workflow.workflow_template_id:
            return None

        templates = self._store.filter(
            WorkflowTemplate, {"id": workflow.workflow_template_id}, limit=1
        )
        if not templates:
            logger.warning(
                "Workflow template missing; skipping chaining",
                extra={"workflow_template_id": workflow.workflow_template_id},
            )
            return None

        next_template_id = templates[0].next_workflow_template_id
        if not next_template_id:
            return None

        # Exactly one hop per completion, even if the template graph is cyclic.
        next_workflow = self._starter.start(
            client_id=workflow.client_id,
            template_id=next_template_id,
            actor=actor,
            chained_from=workflow.id,
        )
        logger.info(
            "Chained next workflow",
            extra={
                "workflow_instance_id": workflow.id,
                "next_workflow_instance_id": next_workflow.id,
                "workflow_template_id": next_template_id,
            },
        )
        return next_workflow
