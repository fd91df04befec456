"""Pydantic request models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from client_workflow_engine.domain.models import PermissionLevel


class StartWorkflowRequest(BaseModel):
    client_id: str
    workflow_template_id: str


class CompleteTaskRequest(BaseModel):
    field_values: dict[str, Any] | None = None


class BlockTaskRequest(BaseModel):
    reason: str


class ReassignTaskRequest(BaseModel):
    assigned_user_id: str


class AdHocTaskRequest(BaseModel):
    name: str
    description: str = ""
    assigned_user_id: str | None = None
    priority: str = "normal"
    deliverable_instance_id: str | None = None


class PermissionCheckRequest(BaseModel):
    agent_id: str
    action_type: str
    target_object_type: str
    target_object_id: str | None = None


class AgentEnabledRequest(BaseModel):
    enabled: bool


class GrantScopeRequest(BaseModel):
    object_type: str
    permission: PermissionLevel


class ProposeActionRequest(BaseModel):
    agent_id: str
    action_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    target_object_type: str | None = None


class RecordActionRequest(BaseModel):
    action_type: str
    result: dict[str, Any]
    agent_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    target_object_type: str | None = None


class RollbackRequest(BaseModel):
    reason: str = "Manual rollback"


class AuditLogRequest(BaseModel):
    agent_id: str
    strategy_action_id: str | None = None
    input_summary: str | None = None
    output_summary: str | None = None
    raw_input: dict[str, Any] = Field(default_factory=dict)
    raw_output: dict[str, Any] = Field(default_factory=dict)
    status: str = "success"
    duration_ms: int = Field(default=0, ge=0)


class FeedbackRequest(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    comment: str | None = None
    was_helpful: bool | None = None
    was_implemented: bool | None = None
