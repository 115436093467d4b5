"""
Feature Flag Interfaces - Core abstractions.

These define the contracts for feature storage drivers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog

from flagkeeper.core.hooks import HookManager

from .events import FeatureResolved, UnknownFeatureResolved
from .registry import ResolverRegistry, UNKNOWN
from .scope import FeatureScopeable, serialize_scope

logger = structlog.get_logger(__name__)


class FeatureDriver(ABC):
    """
    Abstract storage driver for resolved feature values.

    Values are keyed by (feature name, serialized scope). On a miss the
    driver asks its resolver registry for the initial value and persists it,
    unless the feature is unknown.

    Implementations:
    - ArrayFeatureDriver: In-memory (dev/testing)
    - RedisFeatureDriver: Redis hashes
    - DatabaseFeatureDriver: SQL table via SQLAlchemy
    """

    def __init__(
        self,
        name: str,
        hooks: HookManager,
        resolvers: ResolverRegistry | None = None,
    ):
        self.name = name
        self.hooks = hooks
        self.resolvers = resolvers or ResolverRegistry()

    # ============================================================
    # DEFINITIONS
    # ============================================================

    def define(self, feature: str, resolver: Any) -> None:
        """Define an initial value resolver."""
        self.resolvers.define(feature, resolver)

    def defined(self) -> list[str]:
        """Names of all defined features."""
        return self.resolvers.defined()

    # ============================================================
    # STORAGE
    # ============================================================

    @abstractmethod
    def get(self, feature: str, scope: Any) -> Any:
        """Get a feature's value for a scope, resolving it on first use."""
        pass

    @abstractmethod
    def get_all(self, features: dict[str, list[Any]]) -> dict[str, list[Any]]:
        """
        Get many values at once.

        Args:
            features: Feature name -> scopes

        Returns:
            Feature name -> values, aligned with the requested scopes
        """
        pass

    @abstractmethod
    def set(self, feature: str, scope: Any, value: Any) -> None:
        """Set a feature's value for a scope (upsert)."""
        pass

    @abstractmethod
    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        """Overwrite the value of every stored scope of a feature."""
        pass

    @abstractmethod
    def delete(self, feature: str, scope: Any) -> None:
        """Delete a feature's stored value for a scope."""
        pass

    @abstractmethod
    def purge(self, features: list[str] | None = None) -> None:
        """Remove the given features from storage, or all when None."""
        pass

    # ============================================================
    # HELPERS
    # ============================================================

    def serialize_scope(self, scope: Any) -> str:
        return serialize_scope(scope, self.name)

    def resolve_value(self, feature: str, scope: Any) -> Any:
        """
        Compute the initial value of a feature for a scope.

        Returns ``UNKNOWN`` (and dispatches UnknownFeatureResolved) when the
        feature has no resolver.
        """
        value = self.resolvers.resolve(feature, scope)

        if value is UNKNOWN:
            logger.debug("feature.unknown", feature=feature, driver=self.name)
            self.hooks.dispatch(UnknownFeatureResolved(feature, scope))
            return UNKNOWN

        logger.debug("feature.resolved", feature=feature, driver=self.name)
        self.hooks.dispatch(FeatureResolved(feature, scope, value))
        return value


class CanListStoredFeatures(ABC):
    """Drivers that can report what they have stored."""

    @abstractmethod
    def stored(self) -> list[str]:
        """Names of all features with at least one stored value."""
        pass

    @abstractmethod
    def stored_values(self) -> dict[str, list[Any]]:
        """Stored values grouped by feature name."""
        pass


__all__ = [
    "FeatureDriver",
    "CanListStoredFeatures",
    "FeatureScopeable",
]
