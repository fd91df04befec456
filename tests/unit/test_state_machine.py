"""Unit tests for the per-level transition tables.

Illegal transitions must fail loudly; terminal states admit no moves.
"""

from __future__ import annotations

import pytest

from client_workflow_engine.domain.models import (
    DeliverableStatus,
    StageStatus,
    TaskStatus,
    WorkflowStatus,
)
from client_workflow_engine.domain.state_machine import (
    ALLOWED_TRANSITIONS,
    HierarchyLevel,
    IllegalTransitionError,
    can_transition,
    check_transition,
    is_terminal,
)
from client_workflow_engine.errors import InvalidStateError


def test_completed_task_cannot_move() -> None:
    with pytest.raises(IllegalTransitionError) as exc:
        check_transition(level=HierarchyLevel.TASK, current=TaskStatus.COMPLETED, to=TaskStatus.BLOCKED)
    assert isinstance(exc.value, InvalidStateError)
    assert exc.value.status_code == 400


def test_blocked_task_can_resume_or_complete() -> None:
    assert can_transition(level=HierarchyLevel.TASK, current=TaskStatus.BLOCKED, to=TaskStatus.IN_PROGRESS)
    assert can_transition(level=HierarchyLevel.TASK, current=TaskStatus.BLOCKED, to=TaskStatus.COMPLETED)
    assert not can_transition(
        level=HierarchyLevel.TASK, current=TaskStatus.IN_PROGRESS, to=TaskStatus.NOT_STARTED
    )


def test_workflow_terminal_states() -> None:
    assert is_terminal(level=HierarchyLevel.WORKFLOW, status=WorkflowStatus.COMPLETED)
    assert is_terminal(level=HierarchyLevel.WORKFLOW, status=WorkflowStatus.CANCELLED)
    assert not is_terminal(level=HierarchyLevel.WORKFLOW, status=WorkflowStatus.IN_PROGRESS)
    assert not can_transition(
        level=HierarchyLevel.WORKFLOW, current=WorkflowStatus.CANCELLED, to=WorkflowStatus.COMPLETED
    )


def test_skipped_stage_is_terminal() -> None:
    assert is_terminal(level=HierarchyLevel.STAGE, status=StageStatus.SKIPPED)
    with pytest.raises(IllegalTransitionError):
        check_transition(level=HierarchyLevel.STAGE, current=StageStatus.SKIPPED, to=StageStatus.IN_PROGRESS)


def test_deliverable_can_block_and_recover() -> None:
    assert can_transition(
        level=HierarchyLevel.DELIVERABLE, current=DeliverableStatus.IN_PROGRESS, to=DeliverableStatus.BLOCKED
    )
    assert can_transition(
        level=HierarchyLevel.DELIVERABLE, current=DeliverableStatus.BLOCKED, to=DeliverableStatus.IN_PROGRESS
    )


def test_every_status_has_a_table_entry() -> None:
    enums = {
        HierarchyLevel.WORKFLOW: WorkflowStatus,
        HierarchyLevel.STAGE: StageStatus,
        HierarchyLevel.DELIVERABLE: DeliverableStatus,
        HierarchyLevel.TASK: TaskStatus,
    }
    for level, status_enum in enums.items():
        assert set(ALLOWED_TRANSITIONS[level]) == set(status_enum)
