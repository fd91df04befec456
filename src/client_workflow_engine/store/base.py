"""Entity store contract and the shared table-backed implementation.

The engine treats the store as an external collaborator with four operations
(filter/create/update/delete). No transactions are offered: each call is one
physical write, serialized per store instance.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from client_workflow_engine.domain.models import Entity, utc_iso_now
from client_workflow_engine.errors import InvalidInputError, NotFoundError

E = TypeVar("E", bound=Entity)

Record = dict[str, Any]
Tables = dict[str, dict[str, Record]]
Predicate = Mapping[str, object] | Callable[[Any], bool] | None


class EntityStore(Protocol):
    def filter(
        self,
        model: type[E],
        predicate: Predicate = None,
        *,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[E]: ...

    def get(self, model: type[E], entity_id: str) -> E: ...

    def create(self, model: type[E], fields: Mapping[str, object]) -> E: ...

    def update(self, model: type[E], entity_id: str, fields: Mapping[str, object]) -> E: ...

    def delete(self, model: type[E], entity_id: str) -> None: ...


_MISSING = object()


def _lookup(record: Mapping[str, Any], dotted: str) -> object:
    current: object = record
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _normalize(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    return value


def record_matches(record: Mapping[str, Any], predicate: Mapping[str, object]) -> bool:
    """Equality match on (possibly dotted) field paths.

    A set/frozenset/tuple/list expectation matches any of its members.
    """

    for key, expected in predicate.items():
        actual = _lookup(record, key)
        if actual is _MISSING:
            if expected is None:
                continue
            return False
        if isinstance(expected, (set, frozenset, tuple, list)):
            if actual not in {_normalize(v) for v in expected}:
                return False
        elif actual != _normalize(expected):
            return False
    return True


def _sort_records(records: list[Record], sort: str) -> list[Record]:
    descending = sort.startswith("-")
    field = sort.lstrip("-")

    def key(record: Record) -> tuple[bool, Any]:
        value = _lookup(record, field)
        missing = value is _MISSING or value is None
        return (missing, None if missing else value)

    present = [r for r in records if not key(r)[0]]
    absent = [r for r in records if key(r)[0]]
    present.sort(key=lambda r: key(r)[1], reverse=descending)
    return present + absent


def _validation_messages(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in error.errors()
    ]


class TableEntityStore:
    """Entity store over `{entity_name: {id: record}}` tables.

    Subclasses decide where the tables live by overriding `_load_unlocked` and
    `_save_unlocked`. Records are kept in JSON form so every backend sees the
    same shape. Dict insertion order doubles as the insertion-order tiebreaker.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def _load_unlocked(self) -> Tables:
        raise NotImplementedError

    def _save_unlocked(self, tables: Tables) -> None:
        raise NotImplementedError

    @staticmethod
    def _validate(model: type[E], record: Mapping[str, object]) -> E:
        try:
            return model.model_validate(copy.deepcopy(dict(record)))
        except ValidationError as e:
            raise InvalidInputError(
                f"Invalid {model.entity_name} fields",
                details={"errors": _validation_messages(e)},
            ) from e

    def filter(
        self,
        model: type[E],
        predicate: Predicate = None,
        *,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[E]:
        with self._lock:
            table = self._load_unlocked().get(model.entity_name, {})
            records = list(table.values())

        if isinstance(predicate, Mapping):
            records = [r for r in records if record_matches(r, predicate)]
        if sort:
            records = _sort_records(records, sort)

        entities = [self._validate(model, r) for r in records]
        if callable(predicate):
            entities = [e for e in entities if predicate(e)]
        if limit is not None:
            entities = entities[: max(limit, 0)]
        return entities

    def get(self, model: type[E], entity_id: str) -> E:
        with self._lock:
            record = self._load_unlocked().get(model.entity_name, {}).get(entity_id)
        if record is None:
            raise NotFoundError(model.entity_name, entity_id)
        return self._validate(model, record)

    def create(self, model: type[E], fields: Mapping[str, object]) -> E:
        values = {k: v for k, v in fields.items() if k not in {"id", "created_at"}}
        entity = self._validate(
            model, {**values, "id": uuid.uuid4().hex, "created_at": utc_iso_now()}
        )
        with self._lock:
            tables = self._load_unlocked()
            tables.setdefault(model.entity_name, {})[entity.id] = entity.model_dump(mode="json")
            self._save_unlocked(tables)
        return entity

    def update(self, model: type[E], entity_id: str, fields: Mapping[str, object]) -> E:
        with self._lock:
            tables = self._load_unlocked()
            table = tables.get(model.entity_name, {})
            current = table.get(entity_id)
            if current is None:
                raise NotFoundError(model.entity_name, entity_id)
            changes = {
                k: _normalize(v) for k, v in fields.items() if k not in {"id", "created_at"}
            }
            entity = self._validate(model, {**current, **changes})
            table[entity_id] = entity.model_dump(mode="json")
            self._save_unlocked(tables)
        return entity

    def delete(self, model: type[E], entity_id: str) -> None:
        with self._lock:
            tables = self._load_unlocked()
            table = tables.get(model.entity_name, {})
            if entity_id not in table:
                raise NotFoundError(model.entity_name, entity_id)
            del table[entity_id]
            self._save_unlocked(tables)
