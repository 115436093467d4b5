"""
Scope serialization.

Turns any scope value into the string key used by drivers and the
resolution cache. Rules, first match wins:

1. ``FeatureScopeable`` objects supply their own identifier per driver.
2. Persisted SQLAlchemy instances become ``"{table}:{primary key}"``.
3. Everything else is canonical JSON, so structurally equal scopes share a
   key and ``None`` (``null``) never collides with ``""`` (``""``).
"""

from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import InstanceState

from .exceptions import ScopeSerializationError


@runtime_checkable
class FeatureScopeable(Protocol):
    """Objects that know how to identify themselves to a feature driver."""

    def to_feature_identifier(self, driver: str) -> str:
        ...


def serialize_scope(scope: Any, driver: str) -> str:
    """
    Serialize a scope into a storage key for the named driver.

    Raises:
        ScopeSerializationError: If the scope has no stable representation
    """
    if isinstance(scope, FeatureScopeable):
        return str(scope.to_feature_identifier(driver))

    entity_key = _entity_key(scope)
    if entity_key is not None:
        return entity_key

    return json.dumps(
        _normalize(scope),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _entity_key(scope: Any) -> str | None:
    """``"{table}:{pk}"`` for persisted mapped instances, else None."""
    if scope is None or isinstance(scope, (str, int, float, bool)):
        return None

    state = sa_inspect(scope, raiseerr=False)
    if not isinstance(state, InstanceState):
        return None

    identity = state.identity or state.mapper.primary_key_from_instance(scope)
    if not identity or any(part is None for part in identity):
        raise ScopeSerializationError(
            f"Cannot use unsaved {type(scope).__name__} as a feature scope: "
            "it has no primary key yet."
        )

    table = getattr(state.class_, "__tablename__", state.class_.__name__)
    return f"{table}:{','.join(str(part) for part in identity)}"


def _normalize(value: Any) -> Any:
    """Reduce a scope to JSON primitives."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, Enum):
        return _normalize(value.value)

    if isinstance(value, dict):
        # Non-string keys are rejected so {1: x} and {"1": x} stay distinct
        for k in value:
            if not isinstance(k, str):
                raise ScopeSerializationError(
                    f"Scope mapping keys must be strings, got {type(k).__name__} key {k!r}."
                )
        return {k: _normalize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]

    if isinstance(value, (set, frozenset)):
        items = [_normalize(v) for v in value]
        return sorted(items, key=lambda v: json.dumps(v, sort_keys=True))

    if isinstance(value, BaseModel):
        return _normalize(value.model_dump(mode="json"))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _normalize(dataclasses.asdict(value))

    if isinstance(value, (UUID, Decimal)):
        return str(value)

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    raise ScopeSerializationError(
        f"Unable to serialize scope of type {type(value).__name__}. "
        "Implement to_feature_identifier() on it to use it as a feature scope."
    )
