"""Explicit transition tables for the workflow hierarchy.

Every status change performed by the lifecycle engine goes through
`check_transition`, so an illegal move fails loudly instead of silently
overwriting a terminal status.
"""

from __future__ import annotations

from enum import Enum

from client_workflow_engine.domain.models import (
    DeliverableStatus,
    StageStatus,
    TaskStatus,
    WorkflowStatus,
)
from client_workflow_engine.errors import InvalidStateError


class HierarchyLevel(str, Enum):
    WORKFLOW = "workflow_instance"
    STAGE = "stage_instance"
    DELIVERABLE = "deliverable_instance"
    TASK = "task_instance"


WORKFLOW_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    WorkflowStatus.NOT_STARTED: frozenset(
        {WorkflowStatus.IN_PROGRESS, WorkflowStatus.CANCELLED}
    ),
    WorkflowStatus.IN_PROGRESS: frozenset({WorkflowStatus.COMPLETED, WorkflowStatus.CANCELLED}),
    WorkflowStatus.COMPLETED: frozenset(),
    WorkflowStatus.CANCELLED: frozenset(),
}

# A skipped stage only arises from cancellation, which is terminal for the run.
STAGE_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.PENDING: frozenset(
        {StageStatus.IN_PROGRESS, StageStatus.COMPLETED, StageStatus.SKIPPED}
    ),
    StageStatus.IN_PROGRESS: frozenset({StageStatus.COMPLETED, StageStatus.SKIPPED}),
    StageStatus.COMPLETED: frozenset(),
    StageStatus.SKIPPED: frozenset(),
}

DELIVERABLE_TRANSITIONS: dict[DeliverableStatus, frozenset[DeliverableStatus]] = {
    DeliverableStatus.PENDING: frozenset(
        {DeliverableStatus.IN_PROGRESS, DeliverableStatus.COMPLETED, DeliverableStatus.BLOCKED}
    ),
    DeliverableStatus.IN_PROGRESS: frozenset(
        {DeliverableStatus.COMPLETED, DeliverableStatus.BLOCKED}
    ),
    DeliverableStatus.BLOCKED: frozenset(
        {DeliverableStatus.IN_PROGRESS, DeliverableStatus.COMPLETED}
    ),
    DeliverableStatus.COMPLETED: frozenset(),
}

TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.NOT_STARTED: frozenset(
        {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.BLOCKED}
    ),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.BLOCKED}),
    TaskStatus.BLOCKED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset(),
}

ALLOWED_TRANSITIONS: dict[HierarchyLevel, dict] = {
    HierarchyLevel.WORKFLOW: WORKFLOW_TRANSITIONS,
    HierarchyLevel.STAGE: STAGE_TRANSITIONS,
    HierarchyLevel.DELIVERABLE: DELIVERABLE_TRANSITIONS,
    HierarchyLevel.TASK: TASK_TRANSITIONS,
}


class IllegalTransitionError(InvalidStateError):
    def __init__(self, level: HierarchyLevel, current: Enum, to: Enum) -> None:
        super().__init__(
            f"Illegal {level.value} transition: {current.value} -> {to.value}",
            details={"level": level.value, "from": current.value, "to": to.value},
        )
        self.level = level
        self.current = current
        self.to = to


def can_transition(*, level: HierarchyLevel, current: Enum, to: Enum) -> bool:
    return to in ALLOWED_TRANSITIONS[level].get(current, frozenset())


def check_transition(*, level: HierarchyLevel, current: Enum, to: Enum) -> None:
    if not can_transition(level=level, current=current, to=to):
        raise IllegalTransitionError(level, current, to)


def is_terminal(*, level: HierarchyLevel, status: Enum) -> bool:
    return not ALLOWED_TRANSITIONS[level].get(status)
