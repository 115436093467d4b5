"""
Plugin registry for named, swappable implementations.
"""
from __future__ import annotations

from typing import TypeVar, Generic, Callable, Any
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PluginNotFoundError(LookupError):
    """No implementation is registered under the requested name."""

    def __init__(self, kind: str, name: str, available: list[str]):
        self.kind = kind
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown {kind}: {name}. Available: {', '.join(available) or 'none'}"
        )


class PluginRegistry(Generic[T]):
    """
    Maps names to factories building an implementation.

    The feature manager keeps one of these for its storage drivers, so
    applications can plug in their own backends next to the built-in ones.
    Registering a name again replaces the earlier factory.

    Example usage:
    ```python
    drivers = PluginRegistry[FeatureDriver]("feature driver")
    drivers.register("dynamo", make_dynamo_driver)

    if drivers.has("dynamo"):
        driver = drivers.create("dynamo", name="flags", table="feature_flags")
    ```
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._factories: dict[str, Callable[..., T]] = {}

    def register(self, name: str, factory: Callable[..., T]) -> None:
        if name in self._factories:
            logger.info("Replacing %s %r", self.kind, name)
        else:
            logger.debug("Registered %s %r", self.kind, name)

        self._factories[name] = factory

    def has(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> list[str]:
        return sorted(self._factories)

    def create(self, name: str, /, **options: Any) -> T:
        """
        Build the implementation registered as ``name``.

        Raises:
            PluginNotFoundError: If nothing is registered under ``name``
        """
        try:
            factory = self._factories[name]
        except KeyError:
            raise PluginNotFoundError(self.kind, name, self.names()) from None

        return factory(**options)
