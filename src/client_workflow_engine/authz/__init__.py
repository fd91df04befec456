"""AI agent authorization: permission lattice, approval gating, agent registry."""

from client_workflow_engine.authz.agents import DEFAULT_AGENTS, AgentRegistry
from client_workflow_engine.authz.engine import (
    PERMISSION_LATTICE,
    AuthorizationEngine,
    PermissionDecision,
    levels_at_least,
    required_levels,
)

__all__ = [
    "DEFAULT_AGENTS",
    "PERMISSION_LATTICE",
    "AgentRegistry",
    "AuthorizationEngine",
    "PermissionDecision",
    "levels_at_least",
    "required_levels",
]
