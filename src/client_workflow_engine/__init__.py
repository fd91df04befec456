"""Client workflow engine.

Workflow -> stage -> deliverable -> task lifecycle with cascading completion,
an append-only event log, AI agent authorization and an action ledger with
compensating rollback.
"""

__version__ = "0.1.0"

from client_workflow_engine.config import EngineSettings
from client_workflow_engine.container import Engine, build_engine

__all__ = ["__version__", "Engine", "EngineSettings", "build_engine"]
