"""Action ledger (execute / rollback) and the AI invocation audit log."""

from client_workflow_engine.ledger.actions import (
    ActionLedger,
    CompensationKind,
    RollbackOutcome,
    compensation_for,
)
from client_workflow_engine.ledger.audit import AuditLogService, InvocationRecorder

__all__ = [
    "ActionLedger",
    "AuditLogService",
    "CompensationKind",
    "InvocationRecorder",
    "RollbackOutcome",
    "compensation_for",
]
