"""
Resolution cache around a feature driver.

A Decorator is what the manager hands out per store. It resolves feature
names (including class-identified features), keeps an in-memory cache of
resolved values for the current unit of work, and writes mutations through
to the driver.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

import structlog

from flagkeeper.core.hooks import HookManager

from .events import (
    AllFeaturesPurged,
    DynamicallyRegisteringFeature,
    FeatureDeleted,
    FeaturesPurged,
    FeatureUpdated,
    FeatureUpdatedForAllScopes,
)
from .exceptions import FeatureError
from .interaction import InteractsWithFeatures, wrap
from .interfaces import FeatureDriver, CanListStoredFeatures
from .registry import feature_name

logger = structlog.get_logger(__name__)

DefaultScopeResolver = Callable[[str], Any]

_MISSING: Any = object()


class Decorator(InteractsWithFeatures):
    """
    Caching wrapper around a FeatureDriver.

    Usage:
        store = Decorator("array", ArrayFeatureDriver("array", hooks), lambda driver: None, hooks)

        store.define("new-api", lambda user: user.is_beta)
        store.for_(user).active("new-api")
        store.flush_cache()

    Cache entries are keyed by ``(feature name, serialized scope)``. The
    driver always receives the original scope object.
    """

    def __init__(
        self,
        name: str,
        driver: FeatureDriver,
        default_scope_resolver: DefaultScopeResolver,
        hooks: HookManager,
    ):
        self.name = name
        self.driver = driver
        self.default_scope_resolver = default_scope_resolver
        self.hooks = hooks
        self._cache: dict[tuple[str, str], Any] = {}
        self._lock = threading.RLock()

    def _store(self) -> Decorator:
        return self

    def default_scope(self) -> Any:
        """The scope used when none is given."""
        return self.default_scope_resolver(self.name)

    # ============================================================
    # DEFINITIONS
    # ============================================================

    def define(self, feature: Any, resolver: Any = _MISSING) -> Any:
        """
        Define the initial value resolver of a feature.

        ``define(FeatureClass)`` defines a class under its derived name.
        ``define("name")`` without a resolver returns a decorator:

            @store.define("beta")
            def beta(user):
                return user.is_staff
        """
        if resolver is _MISSING:
            if isinstance(feature, type):
                resolver = feature
                feature = feature_name(feature)
            else:
                def register(func):
                    self.define(feature, func)
                    return func
                return register

        name = feature_name(feature) if isinstance(feature, type) else feature

        with self._lock:
            self._forget_cached(name)

        self.driver.define(name, resolver)

    def defined(self) -> list[str]:
        return self.driver.defined()

    def stored(self) -> list[str]:
        return self._listing_driver().stored()

    def stored_values(self) -> dict[str, list[Any]]:
        return self._listing_driver().stored_values()

    def resolve_feature_name(self, feature: Any) -> str:
        """
        Name of a feature, registering class-identified features on first use.

        A class, or a name found in the lazy class table, that is not yet
        defined gets defined here after a DynamicallyRegisteringFeature event.
        """
        if isinstance(feature, type):
            name = feature_name(feature)
            feature_class = feature
        else:
            name = feature
            feature_class = self.driver.resolvers.lazy(name)

        if feature_class is not None and not self.driver.resolvers.has(name):
            logger.debug("feature.dynamically_registering", feature=name, store=self.name)
            self.hooks.dispatch(DynamicallyRegisteringFeature(feature_class))
            self.define(name, feature_class)

        return name

    # ============================================================
    # READS
    # ============================================================

    def get(self, feature: Any, scope: Any) -> Any:
        """Get a feature's value, from the cache when possible."""
        feature = self.resolve_feature_name(feature)
        key = self.driver.serialize_scope(scope)

        with self._lock:
            if (feature, key) in self._cache:
                return self._cache[(feature, key)]

        value = self.driver.get(feature, scope)

        with self._lock:
            self._cache[(feature, key)] = value
        return value

    def get_all(self, features: dict[Any, list[Any]]) -> dict[str, list[Any]]:
        """Get many values through the driver's batched read, caching all of them."""
        requested: dict[str, list[Any]] = {}
        for feature, scopes in features.items():
            requested.setdefault(self.resolve_feature_name(feature), []).extend(scopes)

        results = self.driver.get_all(requested)

        with self._lock:
            for feature, scopes in requested.items():
                for scope, value in zip(scopes, results[feature]):
                    self._cache[(feature, self.driver.serialize_scope(scope))] = value

        return results

    def load(self, features: Any) -> dict[str, list[Any]]:
        """
        Eagerly load feature values into the cache.

        Accepts a feature name or class, a list of them (each loaded for the
        default scope), or a mapping of feature to a scope or list of scopes.
        """
        return self.get_all(self._normalize(features))

    def load_missing(self, features: Any) -> dict[str, list[Any]]:
        """Like ``load``, skipping (feature, scope) pairs already cached."""
        missing: dict[str, list[Any]] = {}

        with self._lock:
            for feature, scopes in self._normalize(features).items():
                feature = self.resolve_feature_name(feature)
                for scope in scopes:
                    if (feature, self.driver.serialize_scope(scope)) not in self._cache:
                        missing.setdefault(feature, []).append(scope)

        if not missing:
            return {}

        return self.get_all(missing)

    def load_all(self, scopes: list[Any] | None = None) -> dict[str, list[Any]]:
        """Load every defined feature for the given scopes (default scope if None)."""
        scopes = scopes if scopes else [self.default_scope()]
        return self.get_all({feature: list(scopes) for feature in self.defined()})

    # ============================================================
    # WRITES
    # ============================================================

    def set(self, feature: Any, scope: Any, value: Any) -> None:
        feature = self.resolve_feature_name(feature)

        self.driver.set(feature, scope, value)

        with self._lock:
            self._cache[(feature, self.driver.serialize_scope(scope))] = value

        self.hooks.dispatch(FeatureUpdated(feature, scope, value))

    def set_for_all_scopes(self, feature: Any, value: Any) -> None:
        feature = self.resolve_feature_name(feature)

        self.driver.set_for_all_scopes(feature, value)

        # Only stored scopes were overwritten, so re-read everything from the driver
        with self._lock:
            self._forget_cached(feature)

        self.hooks.dispatch(FeatureUpdatedForAllScopes(feature, value))

    def delete(self, feature: Any, scope: Any) -> None:
        feature = self.resolve_feature_name(feature)

        self.driver.delete(feature, scope)

        with self._lock:
            self._cache.pop((feature, self.driver.serialize_scope(scope)), None)

        self.hooks.dispatch(FeatureDeleted(feature, scope))

    def purge(self, features: Any = None) -> None:
        """Purge the given features (a name, class or list), or all when None."""
        if features is None:
            self.driver.purge(None)
            self.flush_cache()
            logger.info("feature.all_purged", store=self.name)
            self.hooks.dispatch(AllFeaturesPurged())
            return

        names = [self.resolve_feature_name(f) for f in wrap(features)]
        self.driver.purge(names)

        with self._lock:
            for name in names:
                self._forget_cached(name)

        logger.info("feature.purged", store=self.name, features=names)
        self.hooks.dispatch(FeaturesPurged(names))

    def flush_cache(self) -> None:
        """Drop every cached value."""
        with self._lock:
            self._cache.clear()
        logger.debug("feature.cache_flushed", store=self.name)

    # ============================================================
    # HELPERS
    # ============================================================

    def _normalize(self, features: Any) -> dict[Any, list[Any]]:
        if isinstance(features, dict):
            return {
                feature: wrap(scopes) or [self.default_scope()]
                for feature, scopes in features.items()
            }

        return {feature: [self.default_scope()] for feature in wrap(features)}

    def _forget_cached(self, feature: str) -> None:
        for key in [key for key in self._cache if key[0] == feature]:
            del self._cache[key]

    def _listing_driver(self) -> CanListStoredFeatures:
        if not isinstance(self.driver, CanListStoredFeatures):
            raise FeatureError(f"Store [{self.name}] cannot list stored features.")
        return self.driver


__all__ = ["Decorator", "DefaultScopeResolver"]
