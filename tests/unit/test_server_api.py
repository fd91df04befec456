from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from client_workflow_engine.container import Engine
from client_workflow_engine.domain.models import TaskInstance
from client_workflow_engine.server.app import create_app

USER = {"X-Actor-Type": "user", "X-Actor-Id": "user-1"}


@pytest.fixture
def client(engine: Engine, settings) -> TestClient:
    return TestClient(create_app(engine=engine, settings=settings))


def _start_workflow(client: TestClient, template_fields: dict) -> dict:
    template = client.post("/api/v1/templates", json=template_fields, headers=USER).json()["template"]
    resp = client.post(
        "/api/v1/workflows",
        json={"client_id": "client-1", "workflow_template_id": template["id"]},
        headers=USER,
    )
    assert resp.status_code == 200
    return resp.json()["workflow_instance"]


def test_health(client: TestClient) -> None:
    assert client.get("/api/v1/health").json() == {"status": "ok"}


def test_missing_user_id_is_unauthorized(client: TestClient) -> None:
    resp = client.post("/api/v1/tasks/any/complete", headers={"X-Actor-Type": "user"})

    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_task_lifecycle_over_http(client: TestClient, engine: Engine, template_fields: dict) -> None:
    wf = _start_workflow(client, template_fields)
    tasks = engine.store.filter(TaskInstance, {"workflow_instance_id": wf["id"]}, sort="created_at")

    blocked = client.post(
        f"/api/v1/tasks/{tasks[0].id}/block", json={"reason": "waiting on client"}, headers=USER
    )
    assert blocked.status_code == 200
    assert blocked.json()["task"]["is_blocked"] is True

    done = client.post(
        f"/api/v1/tasks/{tasks[0].id}/complete",
        json={"field_values": {"note": "received"}},
        headers=USER,
    )
    assert done.status_code == 200
    body = done.json()
    assert body["success"] is True
    assert body["task"]["status"] == "completed"
    assert body["progress_percentage"] == 25

    again = client.post(f"/api/v1/tasks/{tasks[0].id}/complete", headers=USER)
    assert again.status_code == 400
    assert again.json()["error"] == "invalid_state"


def test_error_codes_map_to_statuses(client: TestClient) -> None:
    missing = client.post("/api/v1/tasks/nope/complete", headers=USER)
    assert missing.status_code == 404
    assert missing.json() == {
        "success": False,
        "error": "not_found",
        "detail": "task_instance not found: nope",
        "details": {"entity_type": "task_instance", "entity_id": "nope"},
    }

    invalid = client.post("/api/v1/tasks/nope/block", json={"reason": ""}, headers=USER)
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "invalid_input"

    malformed = client.post("/api/v1/workflows", json={"client_id": "c1"}, headers=USER)
    assert malformed.status_code == 400
    assert malformed.json()["error"] == "invalid_input"


def test_cancel_and_events(client: TestClient, template_fields: dict) -> None:
    wf = _start_workflow(client, template_fields)

    resp = client.post(f"/api/v1/workflows/{wf['id']}/cancel", headers=USER)
    assert resp.status_code == 200
    assert resp.json()["tasks_deleted"] == 4
    assert resp.json()["workflow_instance"]["status"] == "cancelled"

    events = client.get(
        "/api/v1/events",
        params={"workflow_instance_id": wf["id"], "event_type": "workflow_instance_cancelled"},
    ).json()["events"]
    assert len(events) == 1
    assert events[0]["payload"]["tasks_deleted"] == 4


def test_delete_workflow(client: TestClient, template_fields: dict) -> None:
    wf = _start_workflow(client, template_fields)

    resp = client.delete(f"/api/v1/workflows/{wf['id']}", headers=USER)
    assert resp.status_code == 200
    assert resp.json()["stages_deleted"] == 2

    assert client.get(f"/api/v1/workflows/{wf['id']}").status_code == 404


def test_permission_check_endpoint(client: TestClient) -> None:
    client.post("/api/v1/agents/seed", headers=USER)

    allowed = client.post(
        "/api/v1/permissions/check",
        json={"agent_id": "operator", "action_type": "read", "target_object_type": "event"},
    ).json()
    assert allowed["allowed"] is True

    denied = client.post(
        "/api/v1/permissions/check",
        json={"agent_id": "operator", "action_type": "delete", "target_object_type": "client"},
    ).json()
    assert denied["allowed"] is False

    unknown = client.post(
        "/api/v1/permissions/check",
        json={"agent_id": "ghost", "action_type": "read", "target_object_type": "client"},
    )
    assert unknown.status_code == 200
    assert unknown.json()["allowed"] is False


def test_action_execute_and_rollback(client: TestClient, template_fields: dict) -> None:
    client.post("/api/v1/agents/seed", headers=USER)
    wf = _start_workflow(client, template_fields)
    ai = {"X-Actor-Type": "ai", "X-Actor-Id": "operator"}

    action = client.post(
        "/api/v1/actions",
        json={
            "agent_id": "operator",
            "action_type": "create_task",
            "payload": {"workflow_instance_id": wf["id"], "title": "Call back"},
        },
        headers=ai,
    ).json()["action"]
    executed = client.post(f"/api/v1/actions/{action['id']}/execute", headers=ai)
    assert executed.status_code == 200
    assert executed.json()["action"]["status"] == "executed"

    rolled = client.post(
        f"/api/v1/actions/{action['id']}/rollback", json={"reason": "not needed"}, headers=USER
    )
    assert rolled.status_code == 200
    assert rolled.json()["rollback_result"] == {"message": "Task deleted", "reverted": True}

    twice = client.post(f"/api/v1/actions/{action['id']}/rollback", headers=USER)
    assert twice.status_code == 400
    assert twice.json()["error"] == "invalid_state"


def test_unapproved_action_is_forbidden(client: TestClient, template_fields: dict) -> None:
    client.post("/api/v1/agents/seed", headers=USER)
    wf = _start_workflow(client, template_fields)
    ai = {"X-Actor-Type": "ai", "X-Actor-Id": "strategist"}

    action = client.post(
        "/api/v1/actions",
        json={
            "agent_id": "strategist",
            "action_type": "create_task",
            "payload": {"workflow_instance_id": wf["id"], "title": "Plan QBR"},
        },
        headers=ai,
    ).json()["action"]

    resp = client.post(f"/api/v1/actions/{action['id']}/execute", headers=ai)
    assert resp.status_code == 403
    assert resp.json()["error"] == "authorization_denied"


def test_audit_log_feedback(client: TestClient) -> None:
    entry = client.post(
        "/api/v1/audit-logs", json={"agent_id": "operator", "status": "error", "output_summary": "timeout"}
    ).json()["audit_log"]

    resp = client.post(
        f"/api/v1/audit-logs/{entry['id']}/feedback", json={"rating": 2, "was_helpful": False}, headers=USER
    )
    assert resp.status_code == 200
    assert resp.json()["audit_log"]["user_feedback"]["rating"] == 2

    bad = client.post(f"/api/v1/audit-logs/{entry['id']}/feedback", json={"rating": 7}, headers=USER)
    assert bad.status_code == 400


def test_agent_governance_is_attributed(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    assert client.post("/api/v1/agents/seed", headers={"X-Actor-Type": "user"}).status_code == 401

    caplog.set_level("INFO", logger="client_workflow_engine.server.app")
    client.post("/api/v1/agents/seed", headers=USER)
    disabled = client.post("/api/v1/agents/operator/enabled", json={"enabled": False}, headers=USER)
    granted = client.post(
        "/api/v1/agents/operator/scopes",
        json={"object_type": "client", "permission": "read"},
        headers=USER,
    )

    assert disabled.status_code == 200
    assert granted.status_code == 200
    attributed = {
        r.getMessage(): r.actor_id
        for r in caplog.records
        if r.name == "client_workflow_engine.server.app"
    }
    assert attributed == {
        "Default agents seeded": "user-1",
        "Agent enabled flag changed": "user-1",
        "Agent scope granted": "user-1",
    }
