"""CLI entrypoint for operator tasks against the local engine state."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from client_workflow_engine import __version__
from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import build_engine
from client_workflow_engine.domain.models import Actor, ActorType
from client_workflow_engine.errors import EngineError, NotFoundError
from client_workflow_engine.logging import configure_logging

logger = logging.getLogger(__name__)


def _actor_from_args(args: argparse.Namespace) -> Actor:
    actor_type = ActorType(args.actor_type)
    if actor_type == ActorType.SYSTEM:
        return Actor.system()
    return Actor(type=actor_type, id=args.actor_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="client-workflow-engine",
        description="Operator commands for the client workflow engine",
    )
    parser.add_argument(
        "--version", action="version", version=f"client-workflow-engine {__version__}"
    )
    parser.add_argument(
        "--actor-type",
        choices=[t.value for t in ActorType],
        default=ActorType.SYSTEM.value,
        help="Who the change is attributed to (default: system)",
    )
    parser.add_argument("--actor-id", default=None, help="User or agent id for the actor")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("seed-agents", help="Create the built-in AI agents and their scopes")

    check = subparsers.add_parser(
        "check-permission", help="Check whether an agent may perform an action"
    )
    check.add_argument("--agent", dest="agent_id", required=True, help="Agent id")
    check.add_argument("--action", dest="action_type", required=True, help="e.g. read, create")
    check.add_argument("--object-type", required=True, help="e.g. task_instance")
    check.add_argument("--object-id", default=None)

    cancel = subparsers.add_parser("cancel-workflow", help="Cancel a workflow instance")
    cancel.add_argument("workflow_id")

    delete = subparsers.add_parser(
        "delete-workflow", help="Irreversibly delete a workflow and everything under it"
    )
    delete.add_argument("workflow_id")
    delete.add_argument(
        "--yes", action="store_true", help="Required; confirms the deletion is intended"
    )

    rollback = subparsers.add_parser("rollback", help="Roll back an executed strategy action")
    rollback.add_argument("action_id")
    rollback.add_argument("--reason", default="Manual rollback")

    events = subparsers.add_parser("events", help="Print events as JSON lines")
    events.add_argument("--workflow", dest="workflow_id", default=None)
    events.add_argument("--type", dest="event_type", default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, stream=sys.stderr)
    engine = build_engine(settings)

    try:
        actor = _actor_from_args(args)

        if args.command == "seed-agents":
            created = engine.agents.seed_default_agents()
            if not created:
                print("All default agents already exist")
            for agent in created:
                print(f"Created agent {agent.agent_id} ({agent.name})")
            return 0

        if args.command == "check-permission":
            try:
                decision = engine.authz.check_permission(
                    args.agent_id, args.action_type, args.object_type, args.object_id
                )
            except NotFoundError as e:
                print(f"denied: {e.message}")
                return 1
            verdict = "allowed" if decision.allowed else "denied"
            if decision.requires_approval:
                verdict += " (requires human approval)"
            print(f"{verdict}: {decision.reason}")
            return 0 if decision.allowed else 1

        if args.command == "cancel-workflow":
            cancelled = engine.lifecycle.cancel_workflow(args.workflow_id, actor=actor)
            print(
                f"Cancelled workflow {cancelled.workflow.id} "
                f"({cancelled.tasks_deleted} open tasks deleted)"
            )
            return 0

        if args.command == "delete-workflow":
            if not args.yes:
                print("Refusing to delete without --yes", file=sys.stderr)
                return 2
            deleted = engine.lifecycle.delete_workflow(args.workflow_id, actor=actor)
            print(
                f"Deleted workflow {deleted.workflow_instance_id}: "
                f"{deleted.stages_deleted} stages, {deleted.deliverables_deleted} deliverables, "
                f"{deleted.tasks_deleted} tasks, {deleted.events_deleted} events"
            )
            return 0

        if args.command == "rollback":
            outcome = engine.ledger.rollback(args.action_id, reason=args.reason, actor=actor)
            print(f"Rolled back {outcome.action.id}: {outcome.message}")
            return 0

        if args.command == "events":
            if args.workflow_id:
                found = engine.events.by_payload("workflow_instance_id", args.workflow_id)
            elif args.event_type:
                found = engine.events.by_type(args.event_type)
            else:
                found = engine.events.all()
            for event in found:
                if args.event_type and event.event_type.value != args.event_type:
                    continue
                print(json.dumps(event.model_dump(mode="json"), ensure_ascii=False))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except EngineError as e:
        logger.warning(e.message, extra={"error_code": e.code})
        print(f"{e.code}: {e.message}", file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        engine.close()


if __name__ == "__main__":
    raise SystemExit(main())
