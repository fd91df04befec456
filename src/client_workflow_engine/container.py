"""Wiring of the engine's services from settings.

Every service receives its collaborators explicitly; `build_engine` is the
one place that decides which implementations are used.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from client_workflow_engine.authz.agents import AgentRegistry
from client_workflow_engine.authz.engine import AuthorizationEngine
from client_workflow_engine.config import EngineSettings
from client_workflow_engine.domain.models import WorkflowTemplate
from client_workflow_engine.events.log import EventLog
from client_workflow_engine.events.notifier import (
    HttpMonitorConsumer,
    InlineNotifier,
    MonitorConsumer,
    Notifier,
    NullMonitorConsumer,
    ThreadedNotifier,
)
from client_workflow_engine.ledger.actions import ActionLedger
from client_workflow_engine.ledger.audit import AuditLogService
from client_workflow_engine.lifecycle.engine import LifecycleEngine
from client_workflow_engine.lifecycle.starter import TemplateWorkflowStarter
from client_workflow_engine.lifecycle.summaries import (
    LLMSummaryGenerator,
    StaticSummaryGenerator,
    SummaryGenerator,
)
from client_workflow_engine.llm.openai_provider import OpenAIChatProvider
from client_workflow_engine.store.base import EntityStore
from client_workflow_engine.store.json_store import JsonFileEntityStore
from client_workflow_engine.store.memory import InMemoryEntityStore

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    store: EntityStore
    events: EventLog
    notifier: Notifier
    starter: TemplateWorkflowStarter
    lifecycle: LifecycleEngine
    agents: AgentRegistry
    authz: AuthorizationEngine
    ledger: ActionLedger
    audit: AuditLogService
    consumer: MonitorConsumer | None = None

    def add_template(self, fields: Mapping[str, object]) -> WorkflowTemplate:
        return self.store.create(WorkflowTemplate, fields)

    def close(self) -> None:
        if isinstance(self.consumer, HttpMonitorConsumer):
            self.consumer.close()


def create_store(settings: EngineSettings) -> EntityStore:
    if settings.store_backend == "memory":
        return InMemoryEntityStore()
    return JsonFileEntityStore(settings.state_file)


def create_monitor_consumer(settings: EngineSettings) -> MonitorConsumer:
    if settings.monitor_url.strip():
        return HttpMonitorConsumer(
            url=settings.monitor_url, timeout_seconds=settings.monitor_timeout_seconds
        )
    return NullMonitorConsumer()


def create_summary_generator(settings: EngineSettings, store: EntityStore) -> SummaryGenerator:
    if settings.openai_api_key.strip():
        logger.info("Using OpenAI stage summaries", extra={"model": settings.openai_model})
        provider = OpenAIChatProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
        )
        return LLMSummaryGenerator(store, provider)
    return StaticSummaryGenerator(store)


def build_engine(
    settings: EngineSettings | None = None,
    *,
    store: EntityStore | None = None,
    notifier: Notifier | None = None,
    summaries: SummaryGenerator | None = None,
) -> Engine:
    """Assemble an engine. Explicit collaborators override what settings select."""

    settings = settings or EngineSettings()
    store = store if store is not None else create_store(settings)

    consumer: MonitorConsumer | None = None
    if notifier is None:
        consumer = create_monitor_consumer(settings)
        if settings.notifier_mode == "inline":
            notifier = InlineNotifier(consumer)
        else:
            notifier = ThreadedNotifier(consumer)

    summaries = summaries if summaries is not None else create_summary_generator(settings, store)

    events = EventLog(store)
    starter = TemplateWorkflowStarter(store=store, events=events, notifier=notifier)
    lifecycle = LifecycleEngine(
        store=store, events=events, notifier=notifier, summaries=summaries, starter=starter
    )
    authz = AuthorizationEngine(store=store, events=events)
    return Engine(
        store=store,
        events=events,
        notifier=notifier,
        starter=starter,
        lifecycle=lifecycle,
        agents=AgentRegistry(store),
        authz=authz,
        ledger=ActionLedger(
            store=store, events=events, lifecycle=lifecycle, starter=starter, authz=authz
        ),
        audit=AuditLogService(store=store, events=events),
        consumer=consumer,
    )
