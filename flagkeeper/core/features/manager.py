"""
Feature Manager - entry point of the feature flag system.

Owns the configured stores, the driver registry, the hook manager and the
default scope resolver. Interaction shortcuts run against the default store.

Usage:
    features = FeatureManager(get_settings())

    @features.define("new-dashboard")
    def new_dashboard(user):
        return user.is_staff

    features.for_(user).active("new-dashboard")
    features.store("redis").activate("maintenance")

    # Between requests / tasks
    features.flush_cache()
"""

from __future__ import annotations

import importlib
import inspect
import json
import pkgutil
from collections import Counter
from types import ModuleType
from typing import Any, Callable

import redis
import structlog
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from flagkeeper.core.config import Settings, get_settings
from flagkeeper.core.hooks import HookManager
from flagkeeper.core.plugins import PluginRegistry
from flagkeeper.models.database import (
    close_db,
    create_db_engine,
    create_session_factory,
    init_db,
)

from .backends import ArrayFeatureDriver, DatabaseFeatureDriver, RedisFeatureDriver
from .decorator import Decorator, DefaultScopeResolver
from .exceptions import InvalidDriverError
from .interaction import InteractsWithFeatures, wrap
from .interfaces import FeatureDriver
from .registry import ResolverRegistry, feature_name

logger = structlog.get_logger(__name__)

# factory(name=store name, hooks=..., resolvers=..., **store options)
DriverFactory = Callable[..., FeatureDriver]

BUILTIN_DRIVERS = ("array", "database", "redis")


class FeatureManager(InteractsWithFeatures):
    """
    Creates and caches one Decorator per configured store.

    Stores are configured in ``settings.features.stores`` as
    ``{store name: {"driver": driver name, **options}}``. Drivers are looked
    up in a PluginRegistry holding ``array``, ``database`` and ``redis``,
    plus anything added with ``extend``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        hooks: HookManager | None = None,
        session_factory: sessionmaker[Session] | None = None,
        redis_client: redis.Redis | None = None,
    ):
        self.settings = settings or get_settings()
        self.hooks = hooks or HookManager()

        self._session_factory = session_factory
        self._redis_client = redis_client
        self._engine: Engine | None = None

        self._stores: dict[str, Decorator] = {}
        self._feature_classes: dict[str, type] = {}
        self._default_store: str | None = None
        self._default_scope_resolver: DefaultScopeResolver = lambda driver: None

        self._drivers: PluginRegistry[FeatureDriver] = PluginRegistry("feature driver")
        self._drivers.register("array", self._create_array_driver)
        self._drivers.register("database", self._create_database_driver)
        self._drivers.register("redis", self._create_redis_driver)

    # ============================================================
    # STORES
    # ============================================================

    def store(self, name: str | None = None) -> Decorator:
        """Get a store by name, creating it on first use."""
        name = name or self.get_default_driver()

        if name not in self._stores:
            self._stores[name] = self._resolve(name)

        return self._stores[name]

    def _store(self) -> Decorator:
        return self.store()

    def _resolve(self, name: str) -> Decorator:
        config = self.settings.store_config(name)

        if config is None:
            # A driver added with extend() can be used as a store of the same name
            if name not in BUILTIN_DRIVERS and self._drivers.has(name):
                config = {"driver": name}
            else:
                raise InvalidDriverError(f"Feature flag store [{name}] is not defined.")

        driver_name = config.pop("driver", None)
        if driver_name is None or not self._drivers.has(driver_name):
            raise InvalidDriverError(f"Driver [{driver_name}] is not supported.")

        driver = self._drivers.create(
            driver_name,
            name=name,
            hooks=self.hooks,
            resolvers=ResolverRegistry(lazy=self._feature_classes),
            **config,
        )

        logger.debug("feature.store_created", store=name, driver=driver_name)
        return Decorator(name, driver, self._default_scope_resolver_for, self.hooks)

    def extend(self, driver: str, factory: DriverFactory) -> FeatureManager:
        """
        Register a custom driver.

        The factory is called as ``factory(name=..., hooks=..., resolvers=...,
        **options)`` with the store options from settings.
        """
        self._drivers.register(driver, factory)
        return self

    def get_default_driver(self) -> str:
        return self._default_store or self.settings.features.default

    def set_default_driver(self, name: str) -> None:
        self._default_store = name

    def forget_drivers(self) -> FeatureManager:
        """Forget every created store; the next access builds them again."""
        self._stores.clear()
        return self

    # ============================================================
    # SCOPE
    # ============================================================

    def resolve_scope_using(self, resolver: DefaultScopeResolver) -> None:
        """
        Set the callback computing the default scope.

        The callback receives the store name, e.g.
        ``features.resolve_scope_using(lambda driver: current_user.get())``.
        """
        self._default_scope_resolver = resolver

    def default_scope(self, driver: str | None = None) -> Any:
        return self._default_scope_resolver(driver or self.get_default_driver())

    def _default_scope_resolver_for(self, driver: str) -> Any:
        return self._default_scope_resolver(driver)

    # ============================================================
    # DEFAULT STORE OPERATIONS
    # ============================================================

    def define(self, feature: Any, *args: Any) -> Any:
        """Define a feature on the default store (usable as a decorator)."""
        return self.store().define(feature, *args)

    def defined(self) -> list[str]:
        return self.store().defined()

    def stored(self) -> list[str]:
        return self.store().stored()

    def stored_values(self) -> dict[str, list[Any]]:
        return self.store().stored_values()

    def get(self, feature: Any, scope: Any) -> Any:
        return self.store().get(feature, scope)

    def get_all(self, features: dict[Any, list[Any]]) -> dict[str, list[Any]]:
        return self.store().get_all(features)

    def set(self, feature: Any, scope: Any, value: Any) -> None:
        self.store().set(feature, scope, value)

    def set_for_all_scopes(self, feature: Any, value: Any) -> None:
        self.store().set_for_all_scopes(feature, value)

    def delete(self, feature: Any, scope: Any) -> None:
        self.store().delete(feature, scope)

    def load(self, features: Any) -> dict[str, list[Any]]:
        return self.store().load(features)

    def load_missing(self, features: Any) -> dict[str, list[Any]]:
        return self.store().load_missing(features)

    def load_all(self, scopes: list[Any] | None = None) -> dict[str, list[Any]]:
        return self.store().load_all(scopes)

    def purge(self, features: Any = None) -> None:
        """Purge features from the default store (all features when None)."""
        self.store().purge(features)

    def activate_for_everyone(self, features: Any, value: Any = True) -> None:
        """Set the value of every stored scope of the features."""
        for feature in wrap(features):
            self.store().set_for_all_scopes(feature, value)

    def deactivate_for_everyone(self, features: Any) -> None:
        self.activate_for_everyone(features, False)

    def list_all(self) -> dict[str, dict[str, int]]:
        """
        Stored value counts per feature.

        Values are keyed by their JSON text:
            {"new-api": {"true": 10, "false": 3}}
        """
        return {
            feature: dict(Counter(json.dumps(value, sort_keys=True) for value in values))
            for feature, values in self.stored_values().items()
        }

    # ============================================================
    # LIFECYCLE
    # ============================================================

    def flush_cache(self) -> None:
        """Flush the in-memory cache of every created store."""
        for store in self._stores.values():
            store.flush_cache()

    def discover(self, package: str | ModuleType) -> list[str]:
        """
        Import every module of a package and record its feature classes.

        Classes defining ``resolve`` are defined on first use, by class or by
        name. Returns the discovered feature names.
        """
        if isinstance(package, str):
            package = importlib.import_module(package)

        modules = [package]
        if hasattr(package, "__path__"):
            for info in pkgutil.walk_packages(package.__path__, f"{package.__name__}."):
                modules.append(importlib.import_module(info.name))

        names = []
        for module in modules:
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module.__name__ or "resolve" not in vars(obj):
                    continue

                name = feature_name(obj)
                self._feature_classes[name] = obj
                names.append(name)

        logger.info("feature.discovered", package=package.__name__, features=names)
        return names

    def close(self) -> None:
        """Dispose of the engine created for the database driver, if any."""
        if self._engine is not None:
            close_db(self._engine)
            self._engine = None

    # ============================================================
    # BUILT-IN DRIVERS
    # ============================================================

    def _create_array_driver(self, *, name, hooks, resolvers, **options) -> FeatureDriver:
        return ArrayFeatureDriver(name, hooks, resolvers)

    def _create_database_driver(self, *, name, hooks, resolvers, **options) -> FeatureDriver:
        return DatabaseFeatureDriver(
            name,
            hooks,
            resolvers,
            session_factory=self._database_sessions(),
        )

    def _create_redis_driver(
        self,
        *,
        name,
        hooks,
        resolvers,
        prefix: str | None = None,
        **options,
    ) -> FeatureDriver:
        return RedisFeatureDriver(
            name,
            hooks,
            resolvers,
            client=self._redis(),
            prefix=prefix or self.settings.features.redis_prefix,
        )

    def _database_sessions(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._engine = create_db_engine(self.settings.database)
            init_db(self._engine)
            self._session_factory = create_session_factory(self._engine)
        return self._session_factory

    def _redis(self) -> redis.Redis:
        if self._redis_client is None:
            self._redis_client = redis.Redis.from_url(
                str(self.settings.redis.url),
                max_connections=self.settings.redis.max_connections,
                decode_responses=self.settings.redis.decode_responses,
            )
        return self._redis_client
