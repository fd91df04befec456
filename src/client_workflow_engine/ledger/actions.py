"""Ledger of automated (strategy) actions and their compensation.

An executed action keeps a `result` snapshot of the entities it created or
changed. Rollback dispatches on the action type to one of a closed set of
compensation kinds; action types without a compensator are still marked
`rolled_back` so they can never be compensated twice.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from client_workflow_engine.authz.engine import AuthorizationEngine
from client_workflow_engine.domain.models import (
    ActionStatus,
    ActionType,
    Actor,
    ClientFieldValue,
    Event,
    EventType,
    StrategyAction,
    WorkflowInstance,
    WorkflowStatus,
    utc_iso_now,
)
from client_workflow_engine.errors import (
    AuthorizationDeniedError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.lifecycle.engine import LifecycleEngine
from client_workflow_engine.lifecycle.starter import WorkflowStarter
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


class CompensationKind(str, Enum):
    CANCEL_WORKFLOW = "cancel_workflow"
    DELETE_TASK = "delete_task"
    MANUAL_INTERVENTION = "manual_intervention"
    NONE = "none"


COMPENSATION_BY_ACTION: dict[ActionType, CompensationKind] = {
    ActionType.CREATE_WORKFLOW: CompensationKind.CANCEL_WORKFLOW,
    ActionType.CREATE_TASK: CompensationKind.DELETE_TASK,
    # The prior value is not retained at proposal time.
    ActionType.UPDATE_CLIENT_FIELD: CompensationKind.MANUAL_INTERVENTION,
}

# (authorization verb, default target object type) checked before executing.
AUTHORIZATION_BY_ACTION: dict[ActionType, tuple[str, str]] = {
    ActionType.CREATE_WORKFLOW: ("create", "workflow_instance"),
    ActionType.CREATE_TASK: ("create", "task_instance"),
    ActionType.UPDATE_CLIENT_FIELD: ("update", "client"),
}


def compensation_for(action_type: str) -> CompensationKind:
    try:
        known = ActionType(action_type)
    except ValueError:
        return CompensationKind.NONE
    return COMPENSATION_BY_ACTION.get(known, CompensationKind.NONE)


def _reference_id(result: Mapping[str, Any], key: str) -> str | None:
    ref = result.get(key)
    if isinstance(ref, Mapping):
        value = ref.get("id")
        return value if isinstance(value, str) and value else None
    return None


@dataclass(frozen=True, slots=True)
class RollbackOutcome:
    action: StrategyAction
    kind: CompensationKind
    message: str
    reverted: bool
    event: Event

    def to_json(self) -> dict[str, object]:
        return {
            "action": self.action.model_dump(mode="json"),
            "compensation": self.kind.value,
            "message": self.message,
            "reverted": self.reverted,
            "event_id": self.event.id,
        }


class ActionLedger:
    def __init__(
        self,
        *,
        store: EntityStore,
        events: EventLog,
        lifecycle: LifecycleEngine,
        starter: WorkflowStarter,
        authz: AuthorizationEngine,
    ) -> None:
        self._store = store
        self._events = events
        self._lifecycle = lifecycle
        self._starter = starter
        self._authz = authz

    def get(self, action_id: str) -> StrategyAction:
        return self._store.get(StrategyAction, action_id)

    def list_actions(self, *, status: ActionStatus | None = None) -> list[StrategyAction]:
        predicate = {"status": status} if status is not None else None
        return self._store.filter(StrategyAction, predicate, sort="created_at")

    # -- proposal ------------------------------------------------------------

    def propose(
        self,
        *,
        agent_id: str,
        action_type: str,
        payload: Mapping[str, Any] | None = None,
        target_object_type: str | None = None,
        actor: Actor,
    ) -> StrategyAction:
        if not action_type or not action_type.strip():
            raise InvalidInputError("action_type is required")

        action = self._store.create(
            StrategyAction,
            {
                "agent_id": agent_id,
                "action_type": action_type.strip(),
                "target_object_type": target_object_type,
                "payload": dict(payload or {}),
                "status": ActionStatus.PROPOSED,
            },
        )
        self._events.append(
            event_type=EventType.STRATEGY_ACTION_REQUESTED,
            source_entity_type=StrategyAction.entity_name,
            source_entity_id=action.id,
            actor=actor,
            payload={"action_type": action.action_type, "agent_id": agent_id},
        )
        return action

    def approve(self, action_id: str, *, actor: Actor) -> StrategyAction:
        action = self.get(action_id)
        if action.status != ActionStatus.PROPOSED:
            raise InvalidStateError(
                f"Only proposed actions can be approved (status: {action.status.value})"
            )
        return self._store.update(
            StrategyAction,
            action_id,
            {"status": ActionStatus.APPROVED, "approved_by": actor.id or actor.type.value},
        )

    def reject(self, action_id: str, *, actor: Actor) -> StrategyAction:
        action = self.get(action_id)
        if action.status not in {ActionStatus.PROPOSED, ActionStatus.APPROVED}:
            raise InvalidStateError(
                f"Only pending actions can be rejected (status: {action.status.value})"
            )
        logger.info(
            "Strategy action rejected",
            extra={"strategy_action_id": action_id, "actor_id": actor.id},
        )
        return self._store.update(StrategyAction, action_id, {"status": ActionStatus.REJECTED})

    # -- execution -----------------------------------------------------------

    def execute(self, action_id: str, *, actor: Actor) -> StrategyAction:
        """Authorize, perform and record a proposed action."""

        action = self.get(action_id)
        if action.status not in {ActionStatus.PROPOSED, ActionStatus.APPROVED}:
            raise InvalidStateError("Action already executed or rejected")
        try:
            known = ActionType(action.action_type)
        except ValueError:
            raise InvalidInputError(
                f"Action type {action.action_type!r} is not supported"
            ) from None

        if action.agent_id:
            verb, default_target = AUTHORIZATION_BY_ACTION[known]
            decision = self._authz.require_permission(
                action.agent_id, verb, action.target_object_type or default_target
            )
            if decision.requires_approval and action.status != ActionStatus.APPROVED:
                raise AuthorizationDeniedError(
                    "Action requires human approval before execution",
                    details={"strategy_action_id": action.id, "agent_id": action.agent_id},
                )

        result = self._perform(known, action, actor=actor)
        return self._mark_executed(action, result, actor=actor)

    def record_executed(
        self,
        *,
        action_type: str,
        result: Mapping[str, Any],
        actor: Actor,
        agent_id: str | None = None,
        payload: Mapping[str, Any] | None = None,
        target_object_type: str | None = None,
    ) -> StrategyAction:
        """Record an action that was already carried out elsewhere."""

        if not action_type or not action_type.strip():
            raise InvalidInputError("action_type is required")
        if not result:
            raise InvalidInputError("result snapshot is required")

        action = self._store.create(
            StrategyAction,
            {
                "agent_id": agent_id,
                "action_type": action_type.strip(),
                "target_object_type": target_object_type,
                "payload": dict(payload or {}),
                "status": ActionStatus.PROPOSED,
            },
        )
        return self._mark_executed(action, result, actor=actor)

    def _mark_executed(
        self, action: StrategyAction, result: Mapping[str, Any], *, actor: Actor
    ) -> StrategyAction:
        action = self._store.update(
            StrategyAction,
            action.id,
            {
                "status": ActionStatus.EXECUTED,
                "result": dict(result),
                "executed_at": utc_iso_now(),
                "executed_by": actor.id or actor.type.value,
            },
        )
        self._events.append(
            event_type=EventType.STRATEGY_ACTION_EXECUTED,
            source_entity_type=StrategyAction.entity_name,
            source_entity_id=action.id,
            actor=actor,
            payload={"action_type": action.action_type, "result": action.result},
        )
        logger.info(
            "Strategy action executed",
            extra={"strategy_action_id": action.id, "action_type": action.action_type},
        )
        return action

    def _perform(
        self, action_type: ActionType, action: StrategyAction, *, actor: Actor
    ) -> dict[str, Any]:
        payload = action.payload
        if action_type == ActionType.CREATE_WORKFLOW:
            workflow = self._starter.start(
                client_id=str(payload.get("client_id") or ""),
                template_id=str(payload.get("workflow_template_id") or ""),
                actor=actor,
            )
            return {
                "workflow_instance": {
                    "id": workflow.id,
                    "name": workflow.name,
                    "client_id": workflow.client_id,
                }
            }
        if action_type == ActionType.CREATE_TASK:
            task = self._lifecycle.create_ad_hoc_task(
                str(payload.get("workflow_instance_id") or ""),
                str(payload.get("title") or payload.get("name") or ""),
                actor=actor,
                description=str(payload.get("description") or ""),
                assigned_user_id=payload.get("assigned_user_id"),
                priority=str(payload.get("priority") or "normal"),
            )
            return {
                "task": {
                    "id": task.id,
                    "name": task.name,
                    "workflow_instance_id": task.workflow_instance_id,
                }
            }
        if action_type == ActionType.UPDATE_CLIENT_FIELD:
            return {"client_field_value": self._write_client_field(payload, actor=actor)}
        raise InvalidInputError(f"Action type {action_type.value!r} is not supported")

    def _write_client_field(self, payload: Mapping[str, Any], *, actor: Actor) -> dict[str, Any]:
        client_id = payload.get("client_id")
        field_code = payload.get("field_code")
        if not client_id or not field_code or "value" not in payload:
            raise InvalidInputError("client_id, field_code and value are required")

        fields = {
            "client_id": client_id,
            "field_code": field_code,
            "value": payload["value"],
            "source_type": "ai_enriched",
        }
        existing = self._store.filter(
            ClientFieldValue, {"client_id": client_id, "field_code": field_code}, limit=1
        )
        if existing:
            record = self._store.update(ClientFieldValue, existing[0].id, fields)
        else:
            record = self._store.create(ClientFieldValue, fields)

        self._events.append(
            event_type=EventType.FIELD_UPDATED,
            source_entity_type=ClientFieldValue.entity_name,
            source_entity_id=record.id,
            actor=actor,
            payload={"field_code": field_code, "object_type": "client", "object_id": client_id},
        )
        return {"id": record.id, "client_id": client_id, "field_code": field_code}

    # -- rollback ------------------------------------------------------------

    def rollback(self, action_id: str, *, reason: str, actor: Actor) -> RollbackOutcome:
        action = self.get(action_id)
        if action.status != ActionStatus.EXECUTED:
            raise InvalidStateError(
                "Can only rollback executed actions",
                details={"strategy_action_id": action_id, "status": action.status.value},
            )

        kind = compensation_for(action.action_type)
        # Exceptions propagate with the action still `executed`, so a retry is possible.
        if kind == CompensationKind.CANCEL_WORKFLOW:
            message, reverted = self._compensate_cancel_workflow(action, actor=actor)
        elif kind == CompensationKind.DELETE_TASK:
            message, reverted = self._compensate_delete_task(action)
        elif kind == CompensationKind.MANUAL_INTERVENTION:
            message, reverted = (
                "Field updates cannot be auto-rolled back - manual intervention required",
                False,
            )
        else:
            message, reverted = "No rollback handler for this action type", False

        rolled_back_at = utc_iso_now()
        action = self._store.update(
            StrategyAction,
            action_id,
            {
                "status": ActionStatus.ROLLED_BACK,
                "result": {
                    **action.result,
                    "rollback_reason": reason,
                    "rollback_at": rolled_back_at,
                    "rollback_by": actor.id or actor.type.value,
                    "rollback_result": {
                        "message": message,
                        "compensation": kind.value,
                        "reverted": reverted,
                    },
                },
            },
        )
        event = self._events.append(
            event_type=EventType.STRATEGY_ACTION_EXECUTED,
            source_entity_type=StrategyAction.entity_name,
            source_entity_id=action_id,
            actor=actor,
            payload={
                "action_type": "rollback",
                "original_action": action.action_type,
                "reason": reason,
                "compensation": kind.value,
                "reverted": reverted,
            },
        )
        logger.info(
            "Strategy action rolled back",
            extra={
                "strategy_action_id": action_id,
                "compensation": kind.value,
                "reverted": reverted,
            },
        )
        return RollbackOutcome(
            action=action, kind=kind, message=message, reverted=reverted, event=event
        )

    def _compensate_cancel_workflow(
        self, action: StrategyAction, *, actor: Actor
    ) -> tuple[str, bool]:
        workflow_id = _reference_id(action.result, "workflow_instance")
        if workflow_id is None:
            return "No workflow reference recorded; nothing to cancel", False

        try:
            workflow = self._store.get(WorkflowInstance, workflow_id)
        except NotFoundError:
            return "Workflow already deleted", True
        if workflow.status == WorkflowStatus.CANCELLED:
            return "Workflow already cancelled", True
        if workflow.status == WorkflowStatus.COMPLETED:
            return "Workflow already completed - manual intervention required", False
        cancelled = self._lifecycle.cancel_workflow(workflow_id, actor=actor)
        return f"Workflow cancelled ({cancelled.tasks_deleted} tasks deleted)", True

    def _compensate_delete_task(self, action: StrategyAction) -> tuple[str, bool]:
        task_id = _reference_id(action.result, "task")
        if task_id is None:
            return "No task reference recorded; nothing to delete", False
        try:
            self._lifecycle.delete_task(task_id)
        except NotFoundError:
            return "Task already removed", True
        return "Task deleted", True
