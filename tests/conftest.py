"""
Pytest fixtures for testing.

Provides:
- In-memory SQLite engine and session factory
- FakeRedis double counting round-trips
- Event recorder on the hook manager
- Managers for a single store and for every built-in driver
"""

from collections import defaultdict
from fnmatch import fnmatchcase
from typing import Any, Generator

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flagkeeper.core.config import FeatureSettings, Settings
from flagkeeper.core.features import FeatureManager
from flagkeeper.core.hooks import HookManager
from flagkeeper.models.base import Base
from flagkeeper.models.database import create_session_factory, init_db


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="function")
def db_engine():
    """Create test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    init_db(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker[Session]:
    return create_session_factory(db_engine)


class QueryCounter:
    """Counts statements executed on an engine."""

    def __init__(self, engine):
        self.statements: list[str] = []
        event.listen(engine, "before_cursor_execute", self._record)

    def _record(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self) -> None:
        self.statements.clear()


@pytest.fixture
def queries(db_engine) -> QueryCounter:
    return QueryCounter(db_engine)


# ============ Mock Implementations ============


class FakeRedis:
    """
    In-memory stand-in for the parts of ``redis.Redis`` the driver uses.

    ``round_trips`` counts direct commands and pipeline executions.
    """

    def __init__(self):
        self.data: dict[str, dict[str, str]] = {}
        self.round_trips = 0

    def hget(self, key: str, field: str) -> str | None:
        self.round_trips += 1
        return self._hget(key, field)

    def hset(self, key: str, field: str | None = None, value: str | None = None, mapping=None) -> int:
        self.round_trips += 1
        return self._hset(key, field, value, mapping)

    def hdel(self, key: str, *fields: str) -> int:
        self.round_trips += 1
        values = self.data.get(key, {})
        removed = sum(1 for field in fields if values.pop(field, None) is not None)
        if key in self.data and not values:
            del self.data[key]
        return removed

    def hkeys(self, key: str) -> list[str]:
        self.round_trips += 1
        return list(self.data.get(key, {}))

    def hvals(self, key: str) -> list[str]:
        self.round_trips += 1
        return self._hvals(key)

    def delete(self, *keys: str) -> int:
        self.round_trips += 1
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def scan_iter(self, match: str | None = None):
        self.round_trips += 1
        for key in list(self.data):
            if match is None or fnmatchcase(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def _hget(self, key, field):
        return self.data.get(key, {}).get(field)

    def _hset(self, key, field, value, mapping):
        values = self.data.setdefault(key, {})
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        added = sum(1 for f in items if f not in values)
        values.update(items)
        return added

    def _hvals(self, key):
        return list(self.data.get(key, {}).values())


class FakePipeline:
    """Queues commands and runs them in one round-trip."""

    def __init__(self, client: FakeRedis):
        self.client = client
        self.commands: list[tuple[str, tuple, dict]] = []

    def hget(self, key, field):
        self.commands.append(("_hget", (key, field), {}))
        return self

    def hset(self, key, field=None, value=None, mapping=None):
        self.commands.append(("_hset", (key, field, value, mapping), {}))
        return self

    def hvals(self, key):
        self.commands.append(("_hvals", (key,), {}))
        return self

    def execute(self) -> list[Any]:
        self.client.round_trips += 1
        results = [
            getattr(self.client, name)(*args, **kwargs)
            for name, args, kwargs in self.commands
        ]
        self.commands.clear()
        return results


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


class EventRecorder:
    """Records every event dispatched through a HookManager."""

    def __init__(self, hooks: HookManager):
        self.events: dict[str, list[Any]] = defaultdict(list)
        hooks.listen("feature.*", self.record)

    def record(self, event: Any) -> None:
        self.events[event.hook_name].append(event)

    def of(self, event_type: type) -> list[Any]:
        return [e for e in self.events[event_type.hook_name] if isinstance(e, event_type)]

    def clear(self) -> None:
        for events in self.events.values():
            events.clear()


@pytest.fixture
def hooks() -> HookManager:
    return HookManager()


@pytest.fixture
def recorder(hooks: HookManager) -> EventRecorder:
    return EventRecorder(hooks)


# ============ Managers ============


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="testing",
        features=FeatureSettings(
            default="array",
            stores={
                "array": {"driver": "array"},
                "database": {"driver": "database"},
                "redis": {"driver": "redis", "prefix": "test-features"},
            },
        ),
    )


@pytest.fixture
def manager(settings, hooks, session_factory, fake_redis) -> FeatureManager:
    """Manager whose default store is the in-memory driver."""
    return FeatureManager(
        settings,
        hooks=hooks,
        session_factory=session_factory,
        redis_client=fake_redis,
    )


@pytest.fixture(params=["array", "database", "redis"])
def driver_manager(request, manager) -> Generator[FeatureManager, None, None]:
    """Manager whose default store runs on each built-in driver in turn."""
    manager.set_default_driver(request.param)
    yield manager
    manager.flush_cache()


class Counter:
    """Resolver that counts its invocations."""

    def __init__(self, value: Any = True):
        self.value = value
        self.calls: list[Any] = []

    def __call__(self, scope):
        self.calls.append(scope)
        return self.value

    @property
    def count(self) -> int:
        return len(self.calls)
