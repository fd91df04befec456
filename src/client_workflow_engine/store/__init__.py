"""Entity store adapters.

The engine only depends on the `EntityStore` protocol; the in-memory and
JSON-file implementations are local-first stand-ins for the external store.
"""

from client_workflow_engine.store.base import EntityStore
from client_workflow_engine.store.json_store import JsonFileEntityStore
from client_workflow_engine.store.memory import InMemoryEntityStore

__all__ = ["EntityStore", "InMemoryEntityStore", "JsonFileEntityStore"]
