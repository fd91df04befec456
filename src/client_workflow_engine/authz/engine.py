"""Authorization engine for automated agents.

Permission levels form an ordered lattice (read < write < execute_actions).
Each action type maps to a minimum level; a scope satisfies the action when its
level is in the set of levels at or above that minimum. Unknown action types
require the top level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from client_workflow_engine.domain.models import (
    Actor,
    AIAgentConfig,
    AIPermissionScope,
    Event,
    EventType,
    PermissionLevel,
)
from client_workflow_engine.errors import AuthorizationDeniedError, InvalidInputError, NotFoundError
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)

PERMISSION_LATTICE: tuple[PermissionLevel, ...] = (
    PermissionLevel.READ,
    PermissionLevel.WRITE,
    PermissionLevel.EXECUTE_ACTIONS,
)

MINIMUM_LEVEL_BY_ACTION: dict[str, PermissionLevel] = {
    "read": PermissionLevel.READ,
    "write": PermissionLevel.WRITE,
    "create": PermissionLevel.WRITE,
    "update": PermissionLevel.WRITE,
    "delete": PermissionLevel.EXECUTE_ACTIONS,
    "execute": PermissionLevel.EXECUTE_ACTIONS,
}

# Reads never need human sign-off, even for agents under strict approval.
_APPROVAL_EXEMPT_ACTIONS = frozenset({"read"})


def levels_at_least(minimum: PermissionLevel) -> frozenset[PermissionLevel]:
    return frozenset(PERMISSION_LATTICE[PERMISSION_LATTICE.index(minimum) :])


def required_levels(action_type: str) -> frozenset[PermissionLevel]:
    minimum = MINIMUM_LEVEL_BY_ACTION.get(
        action_type.strip().lower(), PermissionLevel.EXECUTE_ACTIONS
    )
    return levels_at_least(minimum)


@dataclass(frozen=True, slots=True)
class PermissionDecision:
    allowed: bool
    reason: str
    agent_id: str
    action_type: str
    target_object_type: str
    requires_approval: bool = False
    event: Event | None = None

    def to_json(self) -> dict[str, object]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "agent_id": self.agent_id,
            "action_type": self.action_type,
            "target_object_type": self.target_object_type,
            "requires_approval": self.requires_approval,
            "event_id": self.event.id if self.event is not None else None,
        }


class AuthorizationEngine:
    def __init__(self, *, store: EntityStore, events: EventLog) -> None:
        self._store = store
        self._events = events

    def check_permission(
        self,
        agent_id: str,
        action_type: str,
        target_object_type: str,
        target_object_id: str | None = None,
    ) -> PermissionDecision:
        """Decide whether `agent_id` may perform `action_type` on the target.

        Raises:
            InvalidInputError: A required argument is blank.
            NotFoundError: No configuration exists for the agent.
        """

        if not agent_id or not action_type or not target_object_type:
            raise InvalidInputError(
                "agent_id, action_type and target_object_type are required"
            )
        action = action_type.strip().lower()

        def decide(allowed: bool, reason: str, **kwargs: object) -> PermissionDecision:
            return PermissionDecision(
                allowed=allowed,
                reason=reason,
                agent_id=agent_id,
                action_type=action,
                target_object_type=target_object_type,
                **kwargs,  # type: ignore[arg-type]
            )

        configs = self._store.filter(AIAgentConfig, {"agent_id": agent_id}, limit=1)
        if not configs:
            raise NotFoundError(AIAgentConfig.entity_name, agent_id)
        config = configs[0]

        if not config.is_enabled:
            logger.info("Agent disabled; denying", extra={"agent_id": agent_id})
            return decide(False, "agent disabled")

        scopes = self._store.filter(
            AIPermissionScope,
            {"agent_id": agent_id, "object_type": target_object_type},
            limit=1,
        )
        if not scopes:
            return decide(False, f"no permissions defined for {agent_id} on {target_object_type}")
        scope = scopes[0]

        required = required_levels(action)
        payload: dict[str, object] = {
            "agent_id": agent_id,
            "action_type": action,
            "target_object_type": target_object_type,
            "target_object_id": target_object_id,
            "permission": scope.permission.value,
        }

        if scope.permission not in required:
            event = self._events.append(
                event_type=EventType.PERMISSION_REVOKED,
                source_entity_type=AIAgentConfig.entity_name,
                source_entity_id=config.id,
                actor=Actor.ai(agent_id),
                payload={**payload, "required": sorted(level.value for level in required)},
            )
            logger.info(
                "Permission denied",
                extra={"agent_id": agent_id, "action_type": action, "object_type": target_object_type},
            )
            return decide(
                False,
                f"Operation '{action}' not permitted on {target_object_type}",
                event=event,
            )

        if config.requires_human_approval_for_actions and action not in _APPROVAL_EXEMPT_ACTIONS:
            # Surfaced to the caller, which must obtain approval before executing.
            return decide(True, "Permission granted pending human approval", requires_approval=True)

        event = self._events.append(
            event_type=EventType.PERMISSION_GRANTED,
            source_entity_type=AIAgentConfig.entity_name,
            source_entity_id=config.id,
            actor=Actor.ai(agent_id),
            payload=payload,
        )
        return decide(True, "Permission granted", event=event)

    def require_permission(
        self,
        agent_id: str,
        action_type: str,
        target_object_type: str,
        target_object_id: str | None = None,
    ) -> PermissionDecision:
        """Like `check_permission`, but raises on denial (including unknown agents)."""

        try:
            decision = self.check_permission(
                agent_id, action_type, target_object_type, target_object_id
            )
        except NotFoundError as e:
            raise AuthorizationDeniedError(
                f"Agent {agent_id!r} is not configured", details={"agent_id": agent_id}
            ) from e
        if not decision.allowed:
            raise AuthorizationDeniedError(decision.reason, details=decision.to_json())
        return decision
