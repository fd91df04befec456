"""FastAPI app factory.

Endpoints are thin wrappers over the engine services. The calling actor comes
from the `X-Actor-Type` / `X-Actor-Id` headers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import Engine, build_engine
from client_workflow_engine.domain.models import Actor, ActorType
from client_workflow_engine.errors import EngineError, NotFoundError
from client_workflow_engine.server.models import (
    AdHocTaskRequest,
    AgentEnabledRequest,
    AuditLogRequest,
    BlockTaskRequest,
    CompleteTaskRequest,
    FeedbackRequest,
    GrantScopeRequest,
    PermissionCheckRequest,
    ProposeActionRequest,
    ReassignTaskRequest,
    RecordActionRequest,
    RollbackRequest,
    StartWorkflowRequest,
)

logger = logging.getLogger(__name__)


def get_actor(
    x_actor_type: Annotated[str, Header()] = "user",
    x_actor_id: Annotated[str | None, Header()] = None,
) -> Actor:
    try:
        actor_type = ActorType(x_actor_type.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown actor type: {x_actor_type}") from None
    actor_id = (x_actor_id or "").strip() or None
    if actor_type != ActorType.SYSTEM and actor_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Actor(type=actor_type, id=actor_id)


CurrentActor = Annotated[Actor, Depends(get_actor)]


def _dump(model: Any) -> dict[str, Any]:
    return model.model_dump(mode="json")


def create_app(engine: Engine | None = None, settings: EngineSettings | None = None) -> FastAPI:
    settings = settings or EngineSettings()
    engine = engine or build_engine(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        engine.close()

    app = FastAPI(
        title="Client Workflow Engine",
        version="0.1.0",
        description="REST API over the client workflow lifecycle engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Engine error", extra={"path": request.url.path, "detail": exc.message})
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "invalid_input", "detail": "; ".join(messages)},
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        code = "unauthorized" if exc.status_code == 401 else "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": code, "detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "unexpected", "detail": str(exc)},
        )

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # -- templates & workflows ------------------------------------------------

    @app.post("/api/v1/templates")
    def create_template(body: dict[str, Any], actor: CurrentActor) -> dict[str, Any]:
        template = engine.add_template(body)
        logger.info(
            "Workflow template created",
            extra={
                "workflow_template_id": template.id,
                "actor_type": actor.type.value,
                "actor_id": actor.id,
            },
        )
        return {"success": True, "template": _dump(template)}

    @app.post("/api/v1/workflows")
    def start_workflow(body: StartWorkflowRequest, actor: CurrentActor) -> dict[str, Any]:
        workflow = engine.starter.start(
            client_id=body.client_id, template_id=body.workflow_template_id, actor=actor
        )
        return {"success": True, "workflow_instance": _dump(workflow)}

    @app.get("/api/v1/workflows/{workflow_id}")
    def get_workflow(workflow_id: str) -> dict[str, Any]:
        view = engine.lifecycle.get_workflow_status(workflow_id)
        return {"success": True, **view.to_json()}

    @app.post("/api/v1/workflows/{workflow_id}/complete")
    def complete_workflow(workflow_id: str, actor: CurrentActor) -> dict[str, Any]:
        done = engine.lifecycle.complete_workflow(workflow_id, actor=actor)
        return {
            "success": True,
            "workflow_instance": _dump(done.workflow),
            "event_id": done.event.id,
            "next_workflow_instance_id": done.next_workflow.id if done.next_workflow else None,
        }

    @app.post("/api/v1/workflows/{workflow_id}/cancel")
    def cancel_workflow(workflow_id: str, actor: CurrentActor) -> dict[str, Any]:
        cancelled = engine.lifecycle.cancel_workflow(workflow_id, actor=actor)
        return {
            "success": True,
            "workflow_instance": _dump(cancelled.workflow),
            "tasks_deleted": cancelled.tasks_deleted,
            "event_id": cancelled.event.id,
        }

    @app.delete("/api/v1/workflows/{workflow_id}")
    def delete_workflow(workflow_id: str, actor: CurrentActor) -> dict[str, Any]:
        deleted = engine.lifecycle.delete_workflow(workflow_id, actor=actor)
        return {
            "success": True,
            "tasks_deleted": deleted.tasks_deleted,
            "deliverables_deleted": deleted.deliverables_deleted,
            "stages_deleted": deleted.stages_deleted,
            "events_deleted": deleted.events_deleted,
        }

    @app.post("/api/v1/workflows/{workflow_id}/tasks")
    def create_ad_hoc_task(
        workflow_id: str, body: AdHocTaskRequest, actor: CurrentActor
    ) -> dict[str, Any]:
        task = engine.lifecycle.create_ad_hoc_task(
            workflow_id,
            body.name,
            actor=actor,
            description=body.description,
            assigned_user_id=body.assigned_user_id,
            priority=body.priority,
            deliverable_id=body.deliverable_instance_id,
        )
        return {"success": True, "task": _dump(task)}

    # -- stages & tasks -------------------------------------------------------

    @app.post("/api/v1/stages/{stage_id}/complete")
    def complete_stage(stage_id: str, actor: CurrentActor) -> dict[str, Any]:
        done = engine.lifecycle.complete_stage(stage_id, actor=actor)
        return {
            "success": True,
            "stage": _dump(done.stage),
            "summary": done.summary,
            "workflow_completed": done.workflow_completed,
            "next_stage_id": done.next_stage.id if done.next_stage else None,
        }

    @app.post("/api/v1/tasks/{task_id}/complete")
    def complete_task(
        task_id: str, actor: CurrentActor, body: CompleteTaskRequest | None = None
    ) -> dict[str, Any]:
        done = engine.lifecycle.complete_task(
            task_id, actor=actor, field_values=body.field_values if body else None
        )
        return {
            "success": True,
            "task": _dump(done.task),
            "deliverable_completed": done.deliverable_completed,
            "progress_percentage": done.progress_percentage,
        }

    @app.post("/api/v1/tasks/{task_id}/block")
    def block_task(task_id: str, body: BlockTaskRequest, actor: CurrentActor) -> dict[str, Any]:
        task = engine.lifecycle.block_task(task_id, body.reason, actor=actor)
        return {"success": True, "task": _dump(task)}

    @app.post("/api/v1/tasks/{task_id}/unblock")
    def unblock_task(task_id: str, actor: CurrentActor) -> dict[str, Any]:
        return {"success": True, "task": _dump(engine.lifecycle.unblock_task(task_id, actor=actor))}

    @app.post("/api/v1/tasks/{task_id}/start")
    def start_task(task_id: str, actor: CurrentActor) -> dict[str, Any]:
        return {"success": True, "task": _dump(engine.lifecycle.start_task(task_id, actor=actor))}

    @app.post("/api/v1/tasks/{task_id}/reassign")
    def reassign_task(
        task_id: str, body: ReassignTaskRequest, actor: CurrentActor
    ) -> dict[str, Any]:
        task = engine.lifecycle.reassign_task(task_id, body.assigned_user_id, actor=actor)
        return {"success": True, "task": _dump(task)}

    # -- events ---------------------------------------------------------------

    @app.get("/api/v1/events")
    def list_events(
        workflow_instance_id: str | None = None, event_type: str | None = None
    ) -> dict[str, Any]:
        if workflow_instance_id:
            events = engine.events.by_payload("workflow_instance_id", workflow_instance_id)
        elif event_type:
            events = engine.events.by_type(event_type)
        else:
            events = engine.events.all()
        if workflow_instance_id and event_type:
            events = [e for e in events if e.event_type.value == event_type]
        return {"success": True, "events": [_dump(e) for e in events]}

    # -- agents & authorization ----------------------------------------------

    @app.get("/api/v1/agents")
    def list_agents() -> dict[str, Any]:
        return {"success": True, "agents": [_dump(a) for a in engine.agents.list_agents()]}

    @app.post("/api/v1/agents/seed")
    def seed_agents(actor: CurrentActor) -> dict[str, Any]:
        created = engine.agents.seed_default_agents()
        logger.info(
            "Default agents seeded",
            extra={
                "created": [a.agent_id for a in created],
                "actor_type": actor.type.value,
                "actor_id": actor.id,
            },
        )
        return {"success": True, "created": [a.agent_id for a in created]}

    @app.post("/api/v1/agents/{agent_id}/enabled")
    def set_agent_enabled(
        agent_id: str, body: AgentEnabledRequest, actor: CurrentActor
    ) -> dict[str, Any]:
        agent = engine.agents.set_enabled(agent_id, body.enabled)
        logger.info(
            "Agent enabled flag changed",
            extra={
                "agent_id": agent_id,
                "is_enabled": body.enabled,
                "actor_type": actor.type.value,
                "actor_id": actor.id,
            },
        )
        return {"success": True, "agent": _dump(agent)}

    @app.post("/api/v1/agents/{agent_id}/scopes")
    def grant_scope(agent_id: str, body: GrantScopeRequest, actor: CurrentActor) -> dict[str, Any]:
        scope = engine.agents.grant_scope(agent_id, body.object_type, body.permission)
        logger.info(
            "Agent scope granted",
            extra={
                "agent_id": agent_id,
                "object_type": body.object_type,
                "permission": scope.permission.value,
                "actor_type": actor.type.value,
                "actor_id": actor.id,
            },
        )
        return {"success": True, "scope": _dump(scope)}

    @app.post("/api/v1/permissions/check")
    def check_permission(body: PermissionCheckRequest) -> dict[str, Any]:
        try:
            decision = engine.authz.check_permission(
                body.agent_id, body.action_type, body.target_object_type, body.target_object_id
            )
        except NotFoundError as e:
            return {"success": True, "allowed": False, "reason": e.message}
        return {"success": True, **decision.to_json()}

    # -- strategy actions -----------------------------------------------------

    @app.post("/api/v1/actions")
    def propose_action(body: ProposeActionRequest, actor: CurrentActor) -> dict[str, Any]:
        action = engine.ledger.propose(
            agent_id=body.agent_id,
            action_type=body.action_type,
            payload=body.payload,
            target_object_type=body.target_object_type,
            actor=actor,
        )
        return {"success": True, "action": _dump(action)}

    @app.post("/api/v1/actions/record")
    def record_action(body: RecordActionRequest, actor: CurrentActor) -> dict[str, Any]:
        action = engine.ledger.record_executed(
            action_type=body.action_type,
            result=body.result,
            actor=actor,
            agent_id=body.agent_id,
            payload=body.payload,
            target_object_type=body.target_object_type,
        )
        return {"success": True, "action": _dump(action)}

    @app.post("/api/v1/actions/{action_id}/approve")
    def approve_action(action_id: str, actor: CurrentActor) -> dict[str, Any]:
        return {"success": True, "action": _dump(engine.ledger.approve(action_id, actor=actor))}

    @app.post("/api/v1/actions/{action_id}/reject")
    def reject_action(action_id: str, actor: CurrentActor) -> dict[str, Any]:
        return {"success": True, "action": _dump(engine.ledger.reject(action_id, actor=actor))}

    @app.post("/api/v1/actions/{action_id}/execute")
    def execute_action(action_id: str, actor: CurrentActor) -> dict[str, Any]:
        return {"success": True, "action": _dump(engine.ledger.execute(action_id, actor=actor))}

    @app.post("/api/v1/actions/{action_id}/rollback")
    def rollback_action(
        action_id: str, actor: CurrentActor, body: RollbackRequest | None = None
    ) -> dict[str, Any]:
        outcome = engine.ledger.rollback(
            action_id, reason=(body or RollbackRequest()).reason, actor=actor
        )
        return {
            "success": True,
            "message": "Action rolled back successfully",
            "rollback_result": {"message": outcome.message, "reverted": outcome.reverted},
        }

    # -- audit ----------------------------------------------------------------

    @app.post("/api/v1/audit-logs")
    def log_invocation(body: AuditLogRequest) -> dict[str, Any]:
        entry = engine.audit.log_invocation(
            body.agent_id,
            strategy_action_id=body.strategy_action_id,
            input_summary=body.input_summary,
            output_summary=body.output_summary,
            raw_input=body.raw_input,
            raw_output=body.raw_output,
            status=body.status,
            duration_ms=body.duration_ms,
        )
        return {"success": True, "audit_log": _dump(entry)}

    @app.post("/api/v1/audit-logs/{audit_log_id}/feedback")
    def submit_feedback(
        audit_log_id: str, body: FeedbackRequest, actor: CurrentActor
    ) -> dict[str, Any]:
        entry = engine.audit.submit_feedback(
            audit_log_id,
            actor=actor,
            rating=body.rating,
            comment=body.comment,
            was_helpful=body.was_helpful,
            was_implemented=body.was_implemented,
        )
        return {"success": True, "audit_log": _dump(entry)}

    return app
