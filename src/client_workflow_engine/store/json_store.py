"""JSON-file backed entity store.

The whole document is rewritten on every write. Good enough for a single
local process; anything bigger should sit behind a real database adapter.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from client_workflow_engine.store.base import TableEntityStore, Tables

logger = logging.getLogger(__name__)


class JsonFileEntityStore(TableEntityStore):
    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load_unlocked(self) -> Tables:
        if not self._path.exists():
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Entity state file is not valid JSON; treating as empty",
                extra={"path": str(self._path)},
            )
            return {}

        if not isinstance(raw, dict):
            logger.warning(
                "Entity state file has unexpected shape; treating as empty",
                extra={"path": str(self._path)},
            )
            return {}
        return {
            name: table for name, table in raw.items() if isinstance(table, dict)
        }

    def _save_unlocked(self, tables: Tables) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(tables, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )
