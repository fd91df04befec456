from __future__ import annotations

import pytest

from client_workflow_engine.authz.engine import levels_at_least, required_levels
from client_workflow_engine.container import Engine
from client_workflow_engine.domain.models import EventType, PermissionLevel
from client_workflow_engine.errors import AuthorizationDeniedError, InvalidInputError, NotFoundError


@pytest.fixture
def agent(engine: Engine) -> str:
    engine.agents.register_agent("scout", name="Scout", requires_human_approval_for_actions=False)
    engine.agents.grant_scope("scout", "task_instance", PermissionLevel.WRITE)
    return "scout"


def test_required_levels_follow_the_lattice() -> None:
    assert required_levels("read") == {
        PermissionLevel.READ,
        PermissionLevel.WRITE,
        PermissionLevel.EXECUTE_ACTIONS,
    }
    assert required_levels("Create") == {PermissionLevel.WRITE, PermissionLevel.EXECUTE_ACTIONS}
    assert required_levels("delete") == {PermissionLevel.EXECUTE_ACTIONS}
    # Unknown actions fail closed.
    assert required_levels("teleport") == levels_at_least(PermissionLevel.EXECUTE_ACTIONS)


def test_write_scope_allows_create_and_logs_grant(engine: Engine, agent: str) -> None:
    decision = engine.authz.check_permission(agent, "create", "task_instance", "t-1")

    assert decision.allowed is True
    assert decision.requires_approval is False
    granted = engine.events.by_type(EventType.PERMISSION_GRANTED)
    assert len(granted) == 1
    assert granted[0].actor_type.value == "ai"
    assert granted[0].actor_id == "scout"
    assert granted[0].payload["target_object_id"] == "t-1"


def test_write_scope_denies_delete_with_revocation_event(engine: Engine, agent: str) -> None:
    decision = engine.authz.check_permission(agent, "delete", "task_instance")

    assert decision.allowed is False
    assert decision.reason == "Operation 'delete' not permitted on task_instance"
    assert decision.event is not None
    assert [e.id for e in engine.events.by_type(EventType.PERMISSION_REVOKED)] == [decision.event.id]


def test_unknown_action_requires_execute_actions(engine: Engine, agent: str) -> None:
    assert engine.authz.check_permission(agent, "archive", "task_instance").allowed is False

    engine.agents.grant_scope(agent, "task_instance", PermissionLevel.EXECUTE_ACTIONS)
    assert engine.authz.check_permission(agent, "archive", "task_instance").allowed is True


def test_disabled_agent_is_denied_without_event(engine: Engine, agent: str) -> None:
    engine.agents.set_enabled(agent, False)

    decision = engine.authz.check_permission(agent, "read", "task_instance")

    assert decision.allowed is False
    assert decision.reason == "agent disabled"
    assert engine.events.all() == []


def test_missing_scope_is_denied(engine: Engine, agent: str) -> None:
    decision = engine.authz.check_permission(agent, "read", "client")

    assert decision.allowed is False
    assert decision.reason.startswith("no permissions defined")


def test_unknown_agent_is_not_found(engine: Engine) -> None:
    with pytest.raises(NotFoundError):
        engine.authz.check_permission("ghost", "read", "client")


def test_require_permission_maps_unknown_agent_to_denied(engine: Engine) -> None:
    with pytest.raises(AuthorizationDeniedError) as exc:
        engine.authz.require_permission("ghost", "read", "client")
    assert exc.value.status_code == 403


def test_blank_arguments_are_invalid(engine: Engine) -> None:
    with pytest.raises(InvalidInputError):
        engine.authz.check_permission("", "read", "client")


def test_approval_required_except_for_reads(engine: Engine) -> None:
    engine.agents.register_agent("careful", requires_human_approval_for_actions=True)
    engine.agents.grant_scope("careful", "client", PermissionLevel.WRITE)

    write = engine.authz.check_permission("careful", "update", "client")
    assert write.allowed is True
    assert write.requires_approval is True
    assert write.event is None

    read = engine.authz.check_permission("careful", "read", "client")
    assert read.allowed is True
    assert read.requires_approval is False
    assert read.event is not None


def test_disabling_takes_effect_on_next_check(engine: Engine, agent: str) -> None:
    assert engine.authz.check_permission(agent, "read", "task_instance").allowed
    engine.agents.set_enabled(agent, False)
    assert not engine.authz.check_permission(agent, "read", "task_instance").allowed
