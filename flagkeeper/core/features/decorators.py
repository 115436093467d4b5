"""
Feature gating decorators.

Usage:
    from flagkeeper.core.features import require_features

    @require_features(features, "new_dashboard")
    def new_dashboard(user):
        return {"dashboard": "new"}

    @require_features(features, "exports", "billing", scope=lambda team, **kwargs: team)
    async def export_invoices(team, month):
        ...
"""

from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable, TYPE_CHECKING

from .exceptions import FeatureInactiveError
from .interaction import PendingScopedFeatureInteraction

if TYPE_CHECKING:
    from .manager import FeatureManager


def require_features(
    manager: FeatureManager,
    *features: Any,
    scope: Any = None,
    store: str | None = None,
):
    """
    Decorator requiring every given feature to be active.

    Args:
        manager: The feature manager to check against
        *features: Feature names or classes
        scope: Scope to check; a callable is called with the decorated
            function's arguments. None uses the default scope.
        store: Store name (default store if not given)

    Raises:
        FeatureInactiveError: Before the call, if any feature is inactive
    """
    def check(args: tuple, kwargs: dict) -> None:
        resolved = scope(*args, **kwargs) if callable(scope) else scope
        interaction = _interaction(manager, store, resolved)

        if not interaction.all_are_active(list(features)):
            inactive = [
                interaction.store.resolve_feature_name(feature)
                for feature in features
                if not interaction.active(feature)
            ]
            raise FeatureInactiveError(inactive, resolved)

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                check(args, kwargs)
                return await func(*args, **kwargs)

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            check(args, kwargs)
            return func(*args, **kwargs)

        return wrapper
    return decorator


def _interaction(
    manager: FeatureManager,
    store: str | None,
    scope: Any,
) -> PendingScopedFeatureInteraction:
    interaction = manager.store(store).interaction()
    if scope is not None:
        interaction.for_(scope)
    return interaction
