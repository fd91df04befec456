"""Agent configuration and permission scope management."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from client_workflow_engine.domain.models import AIAgentConfig, AIPermissionScope, PermissionLevel
from client_workflow_engine.errors import InvalidInputError, NotFoundError
from client_workflow_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AgentBlueprint:
    agent_id: str
    name: str
    role: str
    description: str
    requires_human_approval_for_actions: bool
    scopes: dict[str, PermissionLevel] = field(default_factory=dict)


DEFAULT_AGENTS: tuple[AgentBlueprint, ...] = (
    AgentBlueprint(
        agent_id="strategist",
        name="The Strategist",
        role="strategic_command_center",
        description="Monitors system state, identifies bottlenecks, proposes strategic actions",
        requires_human_approval_for_actions=True,
        scopes={
            "client": PermissionLevel.WRITE,
            "workflow_instance": PermissionLevel.READ,
            "strategy_action": PermissionLevel.EXECUTE_ACTIONS,
            "report_instance": PermissionLevel.WRITE,
            "task_instance": PermissionLevel.WRITE,
        },
    ),
    AgentBlueprint(
        agent_id="architect",
        name="The Architect",
        role="workflow_template_builder",
        description="Generates and refines workflow templates from natural language",
        requires_human_approval_for_actions=True,
        scopes={"workflow_template": PermissionLevel.WRITE},
    ),
    AgentBlueprint(
        agent_id="operator",
        name="The Operator",
        role="event_monitor",
        description="Monitors events and proactively identifies issues and opportunities",
        requires_human_approval_for_actions=False,
        scopes={
            "event": PermissionLevel.READ,
            "client": PermissionLevel.WRITE,
            "workflow_instance": PermissionLevel.READ,
            "task_instance": PermissionLevel.WRITE,
            "strategy_action": PermissionLevel.WRITE,
        },
    ),
)


class AgentRegistry:
    """CRUD over AIAgentConfig / AIPermissionScope.

    Nothing is cached: the authorization engine reads the store on every
    check, so disabling an agent applies to the very next check.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def get_agent(self, agent_id: str) -> AIAgentConfig:
        found = self._store.filter(AIAgentConfig, {"agent_id": agent_id}, limit=1)
        if not found:
            raise NotFoundError(AIAgentConfig.entity_name, agent_id)
        return found[0]

    def list_agents(self) -> list[AIAgentConfig]:
        return self._store.filter(AIAgentConfig, sort="agent_id")

    def register_agent(
        self,
        agent_id: str,
        *,
        name: str = "",
        role: str = "",
        description: str = "",
        is_enabled: bool = True,
        requires_human_approval_for_actions: bool = False,
    ) -> AIAgentConfig:
        if not agent_id or not agent_id.strip():
            raise InvalidInputError("agent_id is required")
        fields = {
            "agent_id": agent_id,
            "name": name or agent_id,
            "role": role,
            "description": description,
            "is_enabled": is_enabled,
            "requires_human_approval_for_actions": requires_human_approval_for_actions,
        }
        existing = self._store.filter(AIAgentConfig, {"agent_id": agent_id}, limit=1)
        if existing:
            return self._store.update(AIAgentConfig, existing[0].id, fields)
        logger.info("Registered AI agent", extra={"agent_id": agent_id})
        return self._store.create(AIAgentConfig, fields)

    def set_enabled(self, agent_id: str, enabled: bool) -> AIAgentConfig:
        agent = self.get_agent(agent_id)
        logger.info("AI agent enablement changed", extra={"agent_id": agent_id, "enabled": enabled})
        return self._store.update(AIAgentConfig, agent.id, {"is_enabled": enabled})

    def grant_scope(
        self, agent_id: str, object_type: str, permission: PermissionLevel | str
    ) -> AIPermissionScope:
        """Grant (or replace) the single scope for (agent, object_type)."""

        self.get_agent(agent_id)
        if not object_type or not object_type.strip():
            raise InvalidInputError("object_type is required")
        try:
            level = PermissionLevel(permission)
        except ValueError:
            raise InvalidInputError(f"Unknown permission level: {permission!r}") from None

        existing = self._store.filter(
            AIPermissionScope, {"agent_id": agent_id, "object_type": object_type}
        )
        if existing:
            scope = self._store.update(AIPermissionScope, existing[0].id, {"permission": level})
            # Enforce one scope per pair even if duplicates slipped in.
            for duplicate in existing[1:]:
                self._store.delete(AIPermissionScope, duplicate.id)
            return scope
        return self._store.create(
            AIPermissionScope,
            {"agent_id": agent_id, "object_type": object_type, "permission": level},
        )

    def revoke_scope(self, agent_id: str, object_type: str) -> None:
        existing = self._store.filter(
            AIPermissionScope, {"agent_id": agent_id, "object_type": object_type}
        )
        if not existing:
            raise NotFoundError(AIPermissionScope.entity_name, f"{agent_id}/{object_type}")
        for scope in existing:
            self._store.delete(AIPermissionScope, scope.id)

    def list_scopes(self, agent_id: str) -> list[AIPermissionScope]:
        return self._store.filter(AIPermissionScope, {"agent_id": agent_id}, sort="object_type")

    def seed_default_agents(self) -> list[AIAgentConfig]:
        """Create the built-in agents that do not exist yet. Returns the new ones."""

        created: list[AIAgentConfig] = []
        for blueprint in DEFAULT_AGENTS:
            if self._store.filter(AIAgentConfig, {"agent_id": blueprint.agent_id}, limit=1):
                continue
            agent = self.register_agent(
                blueprint.agent_id,
                name=blueprint.name,
                role=blueprint.role,
                description=blueprint.description,
                requires_human_approval_for_actions=blueprint.requires_human_approval_for_actions,
            )
            for object_type, level in blueprint.scopes.items():
                self.grant_scope(blueprint.agent_id, object_type, level)
            created.append(agent)
        return created
