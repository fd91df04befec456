"""Workflow hierarchy lifecycle: transitions, cascades and collaborators."""

from client_workflow_engine.lifecycle.engine import (
    CancellationResult,
    DeletionResult,
    LifecycleEngine,
    StageCompletion,
    TaskCompletion,
    WorkflowCompletion,
    WorkflowStatusView,
)
from client_workflow_engine.lifecycle.starter import TemplateWorkflowStarter, WorkflowStarter
from client_workflow_engine.lifecycle.summaries import (
    LLMSummaryGenerator,
    StaticSummaryGenerator,
    SummaryGenerator,
)

__all__ = [
    "CancellationResult",
    "DeletionResult",
    "LLMSummaryGenerator",
    "LifecycleEngine",
    "StageCompletion",
    "StaticSummaryGenerator",
    "SummaryGenerator",
    "TaskCompletion",
    "TemplateWorkflowStarter",
    "WorkflowCompletion",
    "WorkflowStarter",
    "WorkflowStatusView",
]
