"""
Mixins for models that act as feature scopes.

Usage:
    class User(Base, HasFeatures):
        __tablename__ = "users"
        ...

    User.feature_manager = features        # once, at startup

    if user.feature_is_active("new-api"):
        ...

    user.feature_value("checkout-theme", manager=other_features)
"""

from __future__ import annotations

from typing import Any, ClassVar, TYPE_CHECKING

from .exceptions import FeatureError

if TYPE_CHECKING:
    from .interaction import PendingScopedFeatureInteraction
    from .manager import FeatureManager


class HasFeatures:
    """
    Lets a scope object check its own features.

    Checks run against ``manager`` when given, else the class-level
    ``feature_manager``, always scoped to ``self``.
    """

    feature_manager: ClassVar[FeatureManager | None] = None

    def features(self, manager: FeatureManager | None = None) -> PendingScopedFeatureInteraction:
        manager = manager or type(self).feature_manager
        if manager is None:
            raise FeatureError(
                f"No feature manager set on {type(self).__name__}; assign "
                f"{type(self).__name__}.feature_manager or pass manager="
            )
        return manager.for_(self)

    def feature_is_active(self, feature: Any, manager: FeatureManager | None = None) -> bool:
        return self.features(manager).active(feature)

    def feature_is_inactive(self, feature: Any, manager: FeatureManager | None = None) -> bool:
        return self.features(manager).inactive(feature)

    def feature_value(self, feature: Any, manager: FeatureManager | None = None) -> Any:
        return self.features(manager).value(feature)
