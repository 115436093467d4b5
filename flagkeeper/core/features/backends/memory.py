"""
In-memory driver for feature flags.

For development and testing. Data is lost on restart.
"""

from typing import Any

from ..interfaces import FeatureDriver, CanListStoredFeatures
from ..registry import UNKNOWN


class ArrayFeatureDriver(FeatureDriver, CanListStoredFeatures):
    """
    In-memory feature storage.

    Useful for:
    - Development without database
    - Unit testing
    - Per-process flags that never need to survive a restart
    """

    def __init__(self, name, hooks, resolvers=None):
        super().__init__(name, hooks, resolvers)
        self._store: dict[str, dict[str, Any]] = {}

    # ============================================================
    # READ OPERATIONS
    # ============================================================

    def get(self, feature: str, scope: Any) -> Any:
        """Get the stored value, resolving and storing it on first use."""
        key = self.serialize_scope(scope)
        values = self._store.get(feature, {})

        if key in values:
            return values[key]

        value = self.resolve_value(feature, scope)
        if value is UNKNOWN:
            return False

        self._store.setdefault(feature, {})[key] = value
        return value

    def get_all(self, features: dict[str, list[Any]]) -> dict[str, list[Any]]:
        """Get many values; in memory there is nothing to batch."""
        return {
            feature: [self.get(feature, scope) for scope in scopes]
            for feature, scopes in features.items()
        }

    # ============================================================
    # WRITE OPERATIONS
    # ============================================================

    def set(self, feature: str, scope: Any, value: Any) -> None:
        self._store.setdefault(feature, {})[self.serialize_scope(scope)] = value

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        values = self._store.get(feature, {})
        for key in values:
            values[key] = value

    def delete(self, feature: str, scope: Any) -> None:
        self._store.get(feature, {}).pop(self.serialize_scope(scope), None)

    def purge(self, features: list[str] | None = None) -> None:
        if features is None:
            self._store.clear()
            return

        for feature in features:
            self._store.pop(feature, None)

    # ============================================================
    # INTROSPECTION
    # ============================================================

    def stored(self) -> list[str]:
        return [feature for feature, values in self._store.items() if values]

    def stored_values(self) -> dict[str, list[Any]]:
        return {
            feature: list(values.values())
            for feature, values in self._store.items()
            if values
        }
