"""In-process entity store."""

from __future__ import annotations

from client_workflow_engine.store.base import TableEntityStore, Tables


class InMemoryEntityStore(TableEntityStore):
    """Keeps every table in a dict; contents are lost with the process."""

    def __init__(self) -> None:
        super().__init__()
        self._tables: Tables = {}

    def _load_unlocked(self) -> Tables:
        return self._tables

    def _save_unlocked(self, tables: Tables) -> None:
        self._tables = tables
