#!/usr/bin/env python3
"""Walk a client through a workflow template from start to finish.

Uses an in-memory store and an inline notifier, so nothing is written to
disk and no monitor URL is needed:

    python examples/basic_usage.py --client acme
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from client_workflow_engine import EngineSettings, build_engine
from client_workflow_engine.domain.models import Actor, TaskInstance, TaskStatus
from client_workflow_engine.logging import configure_logging

TEMPLATE = {
    "name": "Onboarding",
    "stages": [
        {
            "name": "Discovery",
            "sequence_order": 1,
            "deliverables": [
                {
                    "name": "Kickoff",
                    "tasks": [
                        {"name": "Schedule kickoff call", "sequence_order": 1},
                        {"name": "Collect documents", "sequence_order": 2},
                    ],
                }
            ],
        },
        {
            "name": "Setup",
            "sequence_order": 2,
            "deliverables": [{"name": "Accounts", "tasks": [{"name": "Open accounts"}]}],
        },
    ],
}


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a sample onboarding workflow.")
    parser.add_argument("--client", default="client-1", help="Client id to start the workflow for")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    settings = EngineSettings(
        _env_file=None, ENGINE_STORE_BACKEND="memory", ENGINE_NOTIFIER_MODE="inline"
    )
    engine = build_engine(settings)
    actor = Actor.user("example-user")

    template = engine.add_template(TEMPLATE)
    workflow = engine.starter.start(client_id=args.client, template_id=template.id, actor=actor)
    print(f"Started {workflow.id} for {args.client}")

    while True:
        open_tasks = engine.store.filter(
            TaskInstance,
            {"workflow_instance_id": workflow.id},
            sort="created_at",
        )
        open_tasks = [t for t in open_tasks if t.status != TaskStatus.COMPLETED]
        if not open_tasks:
            break
        result = engine.lifecycle.complete_task(open_tasks[0].id, actor=actor)
        print(f"Completed {open_tasks[0].name!r}: {result.progress_percentage}%")

    for event in engine.events.by_payload("workflow_instance_id", workflow.id):
        print(json.dumps({"event_type": event.event_type.value, "at": event.occurred_at}))

    engine.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
