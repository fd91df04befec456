"""Unit tests for the operator CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import Engine, build_engine
from client_workflow_engine.domain.models import ActionStatus, Actor, WorkflowInstance, WorkflowStatus
from client_workflow_engine.main import build_parser, main


@pytest.fixture
def local_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENGINE_STATE_PATH", str(tmp_path / "state"))
    monkeypatch.setenv("ENGINE_STORE_BACKEND", "json")
    monkeypatch.setenv("ENGINE_NOTIFIER_MODE", "inline")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("ENGINE_MONITOR_URL", raising=False)
    monkeypatch.delenv("ENGINE_OPENAI_API_KEY", raising=False)
    yield build_engine(EngineSettings())
    # main() reconfigures the root logger; leave it quiet for later tests.
    logging.getLogger().handlers.clear()


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_seed_agents_then_check_permission(local_engine: Engine, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["seed-agents"]) == 0
    assert "Created agent operator" in capsys.readouterr().out

    assert main(["seed-agents"]) == 0
    assert "already exist" in capsys.readouterr().out

    assert main(["check-permission", "--agent", "operator", "--action", "read", "--object-type", "event"]) == 0
    assert capsys.readouterr().out.splitlines() == ["allowed: Permission granted"]

    assert main(["check-permission", "--agent", "ghost", "--action", "read", "--object-type", "event"]) == 1


def test_cancel_workflow(local_engine: Engine, capsys: pytest.CaptureFixture[str]) -> None:
    template = local_engine.add_template({"name": "One", "stages": [{"name": "S", "deliverables": [{"name": "D", "tasks": [{"name": "T"}]}]}]})
    wf = local_engine.starter.start(client_id="c1", template_id=template.id, actor=Actor.user("u1"))

    assert main(["--actor-type", "user", "--actor-id", "ops-1", "cancel-workflow", wf.id]) == 0
    assert "1 open tasks deleted" in capsys.readouterr().out

    reloaded = build_engine(EngineSettings())
    assert reloaded.store.get(WorkflowInstance, wf.id).status == WorkflowStatus.CANCELLED

    # Cancelling again is an engine error, reported with its code.
    assert main(["cancel-workflow", wf.id]) == 3
    assert "invalid_state" in capsys.readouterr().err


def test_delete_workflow_requires_confirmation(
    local_engine: Engine, template_fields: dict, capsys: pytest.CaptureFixture[str]
) -> None:
    template = local_engine.add_template(template_fields)
    wf = local_engine.starter.start(client_id="c1", template_id=template.id, actor=Actor.user("u1"))

    assert main(["delete-workflow", wf.id]) == 2
    assert main(["delete-workflow", wf.id, "--yes"]) == 0
    assert "2 stages, 3 deliverables, 4 tasks" in capsys.readouterr().out


def test_rollback(local_engine: Engine, capsys: pytest.CaptureFixture[str]) -> None:
    action = local_engine.ledger.record_executed(
        action_type="send_email", result={"message_id": "m-1"}, actor=Actor.system()
    )

    assert main(["rollback", action.id, "--reason", "test"]) == 0
    assert "No rollback handler" in capsys.readouterr().out
    assert build_engine(EngineSettings()).ledger.get(action.id).status == ActionStatus.ROLLED_BACK


def test_events_prints_json_lines(local_engine: Engine, template_fields: dict, capsys: pytest.CaptureFixture[str]) -> None:
    template = local_engine.add_template(template_fields)
    wf = local_engine.starter.start(client_id="c1", template_id=template.id, actor=Actor.user("u1"))

    assert main(["events", "--workflow", wf.id, "--type", "workflow_instance_started"]) == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [e["event_type"] for e in events] == ["workflow_instance_started"]
    assert events[0]["source_entity_id"] == wf.id
