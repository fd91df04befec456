"""Test configuration and fixtures."""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path

import pytest

from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import Engine, build_engine
from client_workflow_engine.domain.models import Actor, Event, WorkflowTemplate
from client_workflow_engine.lifecycle.summaries import StaticSummaryGenerator
from client_workflow_engine.store.memory import InMemoryEntityStore


class RecordingNotifier:
    """Collects dispatched events instead of delivering them."""

    def __init__(self) -> None:
        self.dispatched: list[Event] = []

    def dispatch(self, event: Event) -> None:
        self.dispatched.append(event)

    @property
    def event_types(self) -> list[str]:
        return [e.event_type.value for e in self.dispatched]


ONBOARDING_TEMPLATE: dict[str, object] = {
    "name": "Onboarding",
    "description": "Two-stage client onboarding",
    "stages": [
        {
            "name": "Discovery",
            "sequence_order": 1,
            "deliverables": [
                {
                    "name": "Kickoff",
                    "sequence_order": 1,
                    "tasks": [
                        {"name": "Schedule kickoff call", "sequence_order": 1},
                        {"name": "Collect documents", "sequence_order": 2},
                    ],
                },
                {
                    "name": "Intake review",
                    "sequence_order": 2,
                    "tasks": [{"name": "Review intake form", "sequence_order": 1}],
                },
            ],
        },
        {
            "name": "Setup",
            "sequence_order": 2,
            "deliverables": [
                {
                    "name": "Accounts",
                    "sequence_order": 1,
                    "tasks": [{"name": "Open accounts", "sequence_order": 1}],
                }
            ],
        },
    ],
}


@pytest.fixture
def settings(tmp_path: Path) -> EngineSettings:
    """Settings that never read the developer's `.env`."""
    return EngineSettings(
        _env_file=None,
        ENGINE_STATE_PATH=str(tmp_path / "state"),
        ENGINE_STORE_BACKEND="memory",
        ENGINE_CORS_ORIGINS="http://localhost:5173",
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(settings: EngineSettings, notifier: RecordingNotifier) -> Engine:
    store = InMemoryEntityStore()
    return build_engine(
        settings,
        store=store,
        notifier=notifier,
        summaries=StaticSummaryGenerator(store),
    )


@pytest.fixture
def user() -> Actor:
    return Actor.user("user-1")


@pytest.fixture
def template_fields() -> dict[str, object]:
    return copy.deepcopy(ONBOARDING_TEMPLATE)


@pytest.fixture
def template(engine: Engine) -> WorkflowTemplate:
    return engine.add_template(ONBOARDING_TEMPLATE)


@pytest.fixture
def make_template(engine: Engine) -> Callable[..., WorkflowTemplate]:
    """Build a template with one stage per entry of `tasks_per_stage`."""

    def _make(
        name: str = "Custom",
        tasks_per_stage: tuple[int, ...] = (1,),
        next_workflow_template_id: str | None = None,
    ) -> WorkflowTemplate:
        stages = [
            {
                "name": f"Stage {s + 1}",
                "sequence_order": s + 1,
                "deliverables": [
                    {
                        "name": f"Deliverable {s + 1}",
                        "sequence_order": 1,
                        "tasks": [
                            {"name": f"Task {s + 1}.{t + 1}", "sequence_order": t + 1}
                            for t in range(count)
                        ],
                    }
                ],
            }
            for s, count in enumerate(tasks_per_stage)
        ]
        return engine.add_template(
            {
                "name": name,
                "stages": stages,
                "next_workflow_template_id": next_workflow_template_id,
            }
        )

    return _make
