"""
Redis driver for feature flags.

Each feature is one Redis hash, ``{prefix}:{feature}``, whose fields are
serialized scopes and whose values are JSON.
"""

from __future__ import annotations

import json
from typing import Any

import redis
import structlog

from ..interfaces import FeatureDriver, CanListStoredFeatures
from ..registry import UNKNOWN

logger = structlog.get_logger(__name__)


def _text(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisFeatureDriver(FeatureDriver, CanListStoredFeatures):
    """
    Redis-backed feature storage.

    Usage:
        driver = RedisFeatureDriver(
            "redis",
            hooks,
            redis_url="redis://localhost:6379/0",
            prefix="features",
        )
        driver.define("new_dashboard", True)
        driver.get("new_dashboard", None)

    Batched reads and writes (``get_all``) go through pipelines, so loading
    N (feature, scope) pairs costs at most two round-trips.
    """

    def __init__(
        self,
        name,
        hooks,
        resolvers=None,
        *,
        client: redis.Redis | None = None,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "features",
    ):
        super().__init__(name, hooks, resolvers)
        self.prefix = prefix
        self._client = client or redis.Redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )

    @property
    def client(self) -> redis.Redis:
        return self._client

    def _key(self, feature: str) -> str:
        return f"{self.prefix}:{feature}"

    def _serialize(self, value: Any) -> str:
        return json.dumps(value)

    def _deserialize(self, value: str | bytes) -> Any:
        return json.loads(value)

    # ============================================================
    # READ OPERATIONS
    # ============================================================

    def get(self, feature: str, scope: Any) -> Any:
        """Get the stored value, resolving and storing it on first use."""
        field = self.serialize_scope(scope)
        raw = self.client.hget(self._key(feature), field)

        if raw is not None:
            return self._deserialize(raw)

        value = self.resolve_value(feature, scope)
        if value is UNKNOWN:
            return False

        self.client.hset(self._key(feature), field, self._serialize(value))
        return value

    def get_all(self, features: dict[str, list[Any]]) -> dict[str, list[Any]]:
        """Get many values with one read pipeline and one write pipeline."""
        requests = [
            (feature, scope, self.serialize_scope(scope))
            for feature, scopes in features.items()
            for scope in scopes
        ]
        if not requests:
            return {feature: [] for feature in features}

        pipe = self.client.pipeline(transaction=False)
        for feature, _, field in requests:
            pipe.hget(self._key(feature), field)
        raw_values = pipe.execute()

        results: dict[str, list[Any]] = {feature: [] for feature in features}
        resolved: dict[tuple[str, str], Any] = {}
        writes: dict[tuple[str, str], Any] = {}

        for (feature, scope, field), raw in zip(requests, raw_values):
            if raw is not None:
                results[feature].append(self._deserialize(raw))
                continue

            if (feature, field) not in resolved:
                value = self.resolve_value(feature, scope)
                resolved[(feature, field)] = value
                if value is not UNKNOWN:
                    writes[(feature, field)] = value

            value = resolved[(feature, field)]
            results[feature].append(False if value is UNKNOWN else value)

        if writes:
            pipe = self.client.pipeline(transaction=False)
            for (feature, field), value in writes.items():
                pipe.hset(self._key(feature), field, self._serialize(value))
            pipe.execute()

        return results

    # ============================================================
    # WRITE OPERATIONS
    # ============================================================

    def set(self, feature: str, scope: Any, value: Any) -> None:
        self.client.hset(
            self._key(feature),
            self.serialize_scope(scope),
            self._serialize(value),
        )

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        key = self._key(feature)
        fields = self.client.hkeys(key)
        if not fields:
            return

        serialized = self._serialize(value)
        self.client.hset(key, mapping={_text(f): serialized for f in fields})

    def delete(self, feature: str, scope: Any) -> None:
        self.client.hdel(self._key(feature), self.serialize_scope(scope))

    def purge(self, features: list[str] | None = None) -> None:
        if features is None:
            keys = list(self.client.scan_iter(match=f"{self.prefix}:*"))
        else:
            keys = [self._key(feature) for feature in features]

        if keys:
            self.client.delete(*keys)

        logger.debug("feature.redis_purged", driver=self.name, keys=len(keys))

    # ============================================================
    # INTROSPECTION
    # ============================================================

    def stored(self) -> list[str]:
        offset = len(self.prefix) + 1
        return sorted(
            _text(key)[offset:]
            for key in self.client.scan_iter(match=f"{self.prefix}:*")
        )

    def stored_values(self) -> dict[str, list[Any]]:
        features = self.stored()
        if not features:
            return {}

        pipe = self.client.pipeline(transaction=False)
        for feature in features:
            pipe.hvals(self._key(feature))

        return {
            feature: [self._deserialize(raw) for raw in raw_values]
            for feature, raw_values in zip(features, pipe.execute())
        }
