from __future__ import annotations

import json
import logging
from pathlib import Path

from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import build_engine
from client_workflow_engine.events.notifier import (
    HttpMonitorConsumer,
    InlineNotifier,
    NullMonitorConsumer,
    ThreadedNotifier,
)
from client_workflow_engine.lifecycle.summaries import StaticSummaryGenerator
from client_workflow_engine.logging import JsonFormatter
from client_workflow_engine.store.json_store import JsonFileEntityStore
from client_workflow_engine.store.memory import InMemoryEntityStore


def _settings(tmp_path: Path, **overrides: str) -> EngineSettings:
    return EngineSettings(_env_file=None, ENGINE_STATE_PATH=str(tmp_path), **overrides)


def test_defaults_use_json_store_and_threaded_notifier(tmp_path: Path) -> None:
    engine = build_engine(_settings(tmp_path, ENGINE_OPENAI_API_KEY=""))

    assert isinstance(engine.store, JsonFileEntityStore)
    assert isinstance(engine.notifier, ThreadedNotifier)
    assert isinstance(engine.consumer, NullMonitorConsumer)
    assert isinstance(engine.lifecycle._summaries, StaticSummaryGenerator)


def test_inline_notifier_with_http_monitor(tmp_path: Path) -> None:
    engine = build_engine(
        _settings(
            tmp_path,
            ENGINE_STORE_BACKEND="memory",
            ENGINE_NOTIFIER_MODE="inline",
            ENGINE_MONITOR_URL="http://monitor.local/events",
        )
    )
    try:
        assert isinstance(engine.store, InMemoryEntityStore)
        assert isinstance(engine.notifier, InlineNotifier)
        assert isinstance(engine.consumer, HttpMonitorConsumer)
    finally:
        engine.close()


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="client_workflow_engine.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Workflow started",
        args=(),
        exc_info=None,
    )
    record.workflow_instance_id = "wf-1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Workflow started"
    assert payload["level"] == "INFO"
    assert payload["extra"] == {"workflow_instance_id": "wf-1"}
