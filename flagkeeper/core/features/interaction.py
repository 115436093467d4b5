"""
Scoped feature interactions.

Usage:
    store.for_(user).active("new-api")
    store.for_([team_a, team_b]).all_are_active(["billing", "exports"])
    store.for_(user).when(
        "checkout-v2",
        lambda value, features: render_v2(value),
        lambda features: render_v1(),
    )
"""

from __future__ import annotations

from itertools import product
from typing import Any, Callable, TYPE_CHECKING

from .exceptions import AmbiguousScopeError

if TYPE_CHECKING:
    from .decorator import Decorator


def wrap(value: Any) -> list[Any]:
    """A value or list/tuple of values as a list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class PendingScopedFeatureInteraction:
    """
    Feature checks and mutations over one or more scopes.

    Every operation works on the cross product of the requested features and
    the accumulated scopes. Reads load missing values in one batch first.
    """

    def __init__(self, store: Decorator):
        self.store = store
        self._scopes: list[Any] = []

    def for_(self, scope: Any) -> PendingScopedFeatureInteraction:
        """Add a scope, or a list of scopes."""
        self._scopes.extend(wrap(scope))
        return self

    def scopes(self) -> list[Any]:
        """The accumulated scopes, or the default scope when none were given."""
        return list(self._scopes) if self._scopes else [self.store.default_scope()]

    # ============================================================
    # LOADING
    # ============================================================

    def load(self, features: Any) -> dict[str, list[Any]]:
        return self.store.load({feature: self.scopes() for feature in wrap(features)})

    def load_missing(self, features: Any) -> dict[str, list[Any]]:
        return self.store.load_missing(
            {feature: self.scopes() for feature in wrap(features)}
        )

    def load_all(self) -> dict[str, list[Any]]:
        return self.store.load_all(self.scopes())

    # ============================================================
    # VALUES
    # ============================================================

    def value(self, feature: Any) -> Any:
        """The value of a feature for the single scope."""
        return next(iter(self.values([feature]).values()))

    def values(self, features: Any) -> dict[str, Any]:
        """Feature name -> value for the single scope."""
        scopes = self.scopes()
        if len(scopes) > 1:
            raise AmbiguousScopeError()

        features = wrap(features)
        self.load_missing(features)

        return {
            self.store.resolve_feature_name(feature): self.store.get(feature, scopes[0])
            for feature in features
        }

    def all(self) -> dict[str, Any]:
        """Values of every defined feature."""
        return self.values(self.store.defined())

    # ============================================================
    # CHECKS
    # ============================================================

    def active(self, feature: Any) -> bool:
        return self.all_are_active(wrap(feature))

    def all_are_active(self, features: Any) -> bool:
        """True when every feature is active for every scope."""
        features = wrap(features)
        self.load_missing(features)

        return all(
            self.store.get(feature, scope) is not False
            for feature, scope in product(features, self.scopes())
        )

    def some_are_active(self, features: Any) -> bool:
        """True when, for each scope, at least one feature is active."""
        features = wrap(features)
        self.load_missing(features)

        return all(
            any(self.store.get(feature, scope) is not False for feature in features)
            for scope in self.scopes()
        )

    def inactive(self, feature: Any) -> bool:
        return self.all_are_inactive(wrap(feature))

    def all_are_inactive(self, features: Any) -> bool:
        """True when every feature is inactive for every scope."""
        features = wrap(features)
        self.load_missing(features)

        return all(
            self.store.get(feature, scope) is False
            for feature, scope in product(features, self.scopes())
        )

    def some_are_inactive(self, features: Any) -> bool:
        """True when, for each scope, at least one feature is inactive."""
        features = wrap(features)
        self.load_missing(features)

        return all(
            any(self.store.get(feature, scope) is False for feature in features)
            for scope in self.scopes()
        )

    def when(
        self,
        feature: Any,
        when_active: Callable[[Any, PendingScopedFeatureInteraction], Any],
        when_inactive: Callable[[PendingScopedFeatureInteraction], Any] | None = None,
    ) -> Any:
        """Run ``when_active(value, self)`` if the feature is active, else ``when_inactive(self)``."""
        if self.active(feature):
            return when_active(self.value(feature), self)

        if when_inactive is not None:
            return when_inactive(self)

        return None

    def unless(
        self,
        feature: Any,
        when_inactive: Callable[[PendingScopedFeatureInteraction], Any],
        when_active: Callable[[Any, PendingScopedFeatureInteraction], Any] | None = None,
    ) -> Any:
        """Run ``when_inactive(self)`` if the feature is inactive, else ``when_active(value, self)``."""
        if self.inactive(feature):
            return when_inactive(self)

        if when_active is not None:
            return when_active(self.value(feature), self)

        return None

    # ============================================================
    # MUTATIONS
    # ============================================================

    def activate(self, features: Any, value: Any = True) -> None:
        for feature, scope in product(wrap(features), self.scopes()):
            self.store.set(feature, scope, value)

    def deactivate(self, features: Any) -> None:
        self.activate(features, False)

    def forget(self, features: Any) -> None:
        """Delete stored values so the next read resolves again."""
        for feature, scope in product(wrap(features), self.scopes()):
            self.store.delete(feature, scope)


class InteractsWithFeatures:
    """
    Shortcuts that start a scoped interaction on a store.

    ``x.active("foo")`` is ``x.for_(default scope).active("foo")``.
    """

    def _store(self) -> Decorator:
        raise NotImplementedError

    def interaction(self) -> PendingScopedFeatureInteraction:
        return PendingScopedFeatureInteraction(self._store())

    def for_(self, scope: Any) -> PendingScopedFeatureInteraction:
        return self.interaction().for_(scope)

    def value(self, feature: Any) -> Any:
        return self.interaction().value(feature)

    def values(self, features: Any) -> dict[str, Any]:
        return self.interaction().values(features)

    def all(self) -> dict[str, Any]:
        return self.interaction().all()

    def active(self, feature: Any) -> bool:
        return self.interaction().active(feature)

    def all_are_active(self, features: Any) -> bool:
        return self.interaction().all_are_active(features)

    def some_are_active(self, features: Any) -> bool:
        return self.interaction().some_are_active(features)

    def inactive(self, feature: Any) -> bool:
        return self.interaction().inactive(feature)

    def all_are_inactive(self, features: Any) -> bool:
        return self.interaction().all_are_inactive(features)

    def some_are_inactive(self, features: Any) -> bool:
        return self.interaction().some_are_inactive(features)

    def when(self, feature, when_active, when_inactive=None) -> Any:
        return self.interaction().when(feature, when_active, when_inactive)

    def unless(self, feature, when_inactive, when_active=None) -> Any:
        return self.interaction().unless(feature, when_inactive, when_active)

    def activate(self, features: Any, value: Any = True) -> None:
        self.interaction().activate(features, value)

    def deactivate(self, features: Any) -> None:
        self.interaction().deactivate(features)

    def forget(self, features: Any) -> None:
        self.interaction().forget(features)
