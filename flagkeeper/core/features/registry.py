"""
Default-value resolver registry.

Maps feature names to the functions computing their initial value for a
scope. Accepted resolver forms:

    registry.define("beta", lambda user: user.is_staff)   # function of scope
    registry.define("theme", "dark")                      # constant
    registry.define("checkout", Lottery.odds(1, 10))      # drawn per scope
    registry.define("api-v2", NewApi)                     # feature class

Feature classes are instantiated once per resolution; ``resolve(scope)`` is
called if present, otherwise the instance itself.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable

from .lottery import Lottery


class _Unknown:
    def __repr__(self) -> str:
        return "UNKNOWN"


# Returned by ResolverRegistry.resolve for undefined features
UNKNOWN: Any = _Unknown()

Resolver = Callable[[Any], Any]


def is_feature_class(value: Any) -> bool:
    """True for classes whose instances can resolve a feature value."""
    if not isinstance(value, type):
        return False
    if callable(getattr(value, "resolve", None)):
        return True
    return any("__call__" in vars(klass) for klass in value.__mro__[:-1])


def feature_name(feature_class: type) -> str:
    """
    Name of a feature class.

    Uses the instance ``name`` attribute when set, else the dotted import
    path of the class.
    """
    name = getattr(feature_class(), "name", None)
    if isinstance(name, str) and name:
        return name
    return f"{feature_class.__module__}.{feature_class.__qualname__}"


def _accepts_argument(func: Callable) -> bool:
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL)
        for p in parameters
    )


def _call_with_scope(func: Callable, scope: Any) -> Any:
    return func(scope) if _accepts_argument(func) else func()


def _class_resolver(feature_class: type) -> Resolver:
    def resolve(scope: Any) -> Any:
        instance = feature_class()
        method = getattr(instance, "resolve", None)
        return _call_with_scope(method if callable(method) else instance, scope)

    resolve.feature_class = feature_class  # type: ignore[attr-defined]
    return resolve


def _callable_resolver(func: Callable) -> Resolver:
    if isinstance(func, Lottery) or _accepts_argument(func):
        return func
    return lambda scope: func()


def _constant_resolver(value: Any) -> Resolver:
    return lambda scope: value


class ResolverRegistry:
    """Feature name -> resolver table, plus lazily defined feature classes."""

    def __init__(self, lazy: dict[str, type] | None = None):
        self._resolvers: dict[str, Resolver] = {}
        # May be shared between registries, e.g. every store of one manager
        self._lazy: dict[str, type] = lazy if lazy is not None else {}

    def define(self, name: str, resolver: Any) -> None:
        """Define (or redefine) the resolver of a feature."""
        if is_feature_class(resolver):
            self._resolvers[name] = _class_resolver(resolver)
        elif callable(resolver):
            self._resolvers[name] = _callable_resolver(resolver)
        else:
            self._resolvers[name] = _constant_resolver(resolver)

    def defined(self) -> list[str]:
        """Names of all defined features, in definition order."""
        return list(self._resolvers)

    def has(self, name: str) -> bool:
        return name in self._resolvers

    def resolve(self, name: str, scope: Any) -> Any:
        """Compute the initial value, or ``UNKNOWN`` if nothing is defined."""
        resolver = self._resolvers.get(name)
        if resolver is None:
            return UNKNOWN

        value = resolver(scope)
        if isinstance(value, Lottery):
            value = value()
        return value

    def define_lazily(self, feature_class: type) -> str:
        """Record a feature class to be defined the first time it is used."""
        name = feature_name(feature_class)
        self._lazy[name] = feature_class
        return name

    def lazy(self, name: str) -> type | None:
        return self._lazy.get(name)
