"""Entity models for the workflow hierarchy, the event trail and AI governance.

Entities are plain pydantic models. Identity (`id`) and `created_at` are
assigned by the entity store on create; everything else is owned by the
component that writes the entity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


def utc_iso_now() -> str:
    # Fixed precision keeps ISO strings lexicographically sortable.
    return datetime.now(tz=UTC).isoformat(timespec="microseconds")


class WorkflowStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class DeliverableStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class ActorType(str, Enum):
    USER = "user"
    AI = "ai"
    SYSTEM = "system"


class EventType(str, Enum):
    WORKFLOW_INSTANCE_STARTED = "workflow_instance_started"
    WORKFLOW_INSTANCE_COMPLETED = "workflow_instance_completed"
    WORKFLOW_INSTANCE_CANCELLED = "workflow_instance_cancelled"
    STAGE_ENTERED = "stage_entered"
    STAGE_COMPLETED = "stage_completed"
    DELIVERABLE_COMPLETED = "deliverable_completed"
    DELIVERABLE_BLOCKED = "deliverable_blocked"
    TASK_RELEASED = "task_released"
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    TASK_BLOCKED = "task_blocked"
    TASK_UNBLOCKED = "task_unblocked"
    TASK_REASSIGNED = "task_reassigned"
    FIELD_UPDATED = "field_updated"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    STRATEGY_ACTION_REQUESTED = "strategy_action_requested"
    STRATEGY_ACTION_EXECUTED = "strategy_action_executed"
    AI_REASONING_TRIGGERED = "ai_reasoning_triggered"


class PermissionLevel(str, Enum):
    READ = "read"
    WRITE = "write"
    EXECUTE_ACTIONS = "execute_actions"


class ActionType(str, Enum):
    CREATE_WORKFLOW = "create_workflow"
    CREATE_TASK = "create_task"
    UPDATE_CLIENT_FIELD = "update_client_field"


class ActionStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTED = "executed"
    ROLLED_BACK = "rolled_back"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Actor:
    """Who is performing an operation.

    Passed explicitly to every mutating call. `id` may only be omitted for the
    system actor.
    """

    type: ActorType
    id: str | None = None

    @classmethod
    def user(cls, user_id: str) -> Actor:
        return cls(type=ActorType.USER, id=user_id)

    @classmethod
    def ai(cls, agent_id: str) -> Actor:
        return cls(type=ActorType.AI, id=agent_id)

    @classmethod
    def system(cls) -> Actor:
        return cls(type=ActorType.SYSTEM, id=None)


SYSTEM_ACTOR = Actor.system()


class Entity(BaseModel):
    """Base for everything kept in the entity store."""

    entity_name: ClassVar[str] = "entity"

    id: str = Field(default="")
    created_at: str = Field(default="")

    model_config = ConfigDict(extra="ignore")


# Template definitions are embedded in the WorkflowTemplate document.


class TaskDefinition(BaseModel):
    name: str
    sequence_order: int = 1
    description: str = ""
    priority: str = "normal"
    assigned_user_id: str | None = None


class DeliverableDefinition(BaseModel):
    name: str
    sequence_order: int = 1
    tasks: list[TaskDefinition] = Field(default_factory=list)


class StageDefinition(BaseModel):
    name: str
    sequence_order: int = 1
    deliverables: list[DeliverableDefinition] = Field(default_factory=list)


class WorkflowTemplate(Entity):
    entity_name: ClassVar[str] = "workflow_template"

    name: str
    description: str = ""
    stages: list[StageDefinition] = Field(default_factory=list)
    next_workflow_template_id: str | None = None


class WorkflowInstance(Entity):
    entity_name: ClassVar[str] = "workflow_instance"

    workflow_template_id: str | None = None
    client_id: str
    name: str = ""
    status: WorkflowStatus = WorkflowStatus.IN_PROGRESS
    progress_percentage: int = 0
    started_at: str | None = None
    completed_at: str | None = None
    current_stage_id: str | None = None
    chained_from_instance_id: str | None = None
    next_workflow_instance_id: str | None = None


class StageInstance(Entity):
    entity_name: ClassVar[str] = "stage_instance"

    workflow_instance_id: str
    name: str = ""
    sequence_order: int = 1
    status: StageStatus = StageStatus.PENDING
    progress_percentage: int = 0
    started_at: str | None = None
    completed_at: str | None = None
    summary: str | None = None


class DeliverableInstance(Entity):
    entity_name: ClassVar[str] = "deliverable_instance"

    stage_instance_id: str
    workflow_instance_id: str
    name: str = ""
    sequence_order: int = 1
    status: DeliverableStatus = DeliverableStatus.PENDING
    started_at: str | None = None
    completed_at: str | None = None


class TaskInstance(Entity):
    entity_name: ClassVar[str] = "task_instance"

    workflow_instance_id: str
    deliverable_instance_id: str | None = None
    client_id: str | None = None
    name: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    is_blocked: bool = False
    blocker_reason: str | None = None
    assigned_user_id: str | None = None
    is_ad_hoc: bool = False
    sequence_order: int = 1
    priority: str = "normal"
    field_values: dict[str, Any] = Field(default_factory=dict)
    started_at: str | None = None
    completed_at: str | None = None


class ClientFieldValue(Entity):
    entity_name: ClassVar[str] = "client_field_value"

    client_id: str
    field_code: str
    value: Any = None
    source_type: str = "user_input"


class Event(Entity):
    entity_name: ClassVar[str] = "event"

    event_type: EventType
    source_entity_type: str
    source_entity_id: str
    actor_type: ActorType
    actor_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: str


class AIAgentConfig(Entity):
    entity_name: ClassVar[str] = "ai_agent_config"

    agent_id: str
    name: str = ""
    role: str = ""
    description: str = ""
    is_enabled: bool = True
    requires_human_approval_for_actions: bool = False


class AIPermissionScope(Entity):
    entity_name: ClassVar[str] = "ai_permission_scope"

    agent_id: str
    object_type: str
    permission: PermissionLevel


class StrategyAction(Entity):
    entity_name: ClassVar[str] = "strategy_action"

    agent_id: str | None = None
    # Free-form so actions recorded by newer agents still load; known values
    # are listed in ActionType.
    action_type: str
    target_object_type: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    status: ActionStatus = ActionStatus.PROPOSED
    result: dict[str, Any] = Field(default_factory=dict)
    approved_by: str | None = None
    executed_by: str | None = None
    executed_at: str | None = None


class AIAuditLog(Entity):
    entity_name: ClassVar[str] = "ai_audit_log"

    agent_id: str
    strategy_action_id: str | None = None
    input_summary: str = "No summary"
    output_summary: str = "No summary"
    raw_input: dict[str, Any] = Field(default_factory=dict)
    raw_output: dict[str, Any] = Field(default_factory=dict)
    status: AuditStatus = AuditStatus.SUCCESS
    duration_ms: int = 0
    user_feedback: dict[str, Any] | None = None
    was_approved: bool | None = None


ENTITY_MODELS: tuple[type[Entity], ...] = (
    WorkflowTemplate,
    WorkflowInstance,
    StageInstance,
    DeliverableInstance,
    TaskInstance,
    ClientFieldValue,
    Event,
    AIAgentConfig,
    AIPermissionScope,
    StrategyAction,
    AIAuditLog,
)
