"""
Feature Flag System.

Features resolve to a value per scope (a user, a team, any JSON-able value,
or None for global). The first resolution is stored; later checks read the
stored value until it is changed or purged.

Level 1 - Global check:
    from flagkeeper.core.features import FeatureManager

    features = FeatureManager()
    features.define("new-dashboard", True)

    if features.active("new-dashboard"):
        ...

Level 2 - Scoped:
    @features.define("advanced-analytics")
    def advanced_analytics(user):
        return user.tier == "enterprise"

    features.for_(user).active("advanced-analytics")
    features.for_([team_a, team_b]).some_are_active(["exports", "billing"])

Level 3 - Rich values and rollouts:
    features.define("checkout-theme", lambda user: "dark" if user.beta else "light")
    features.define("new-search", Lottery.odds(1, 10))

    features.for_(user).value("checkout-theme")

Level 4 - Class features:
    class NewApi:
        name = "new-api"

        def resolve(self, user):
            return user.is_internal

    features.for_(user).active(NewApi)     # defined on first use
    features.discover("myapp.features")    # or looked up by name

Level 5 - Management:
    features.for_(user).activate("new-api")
    features.activate_for_everyone("new-api")
    features.store("redis").purge(["old-checkout"])
"""

from .interfaces import (
    FeatureDriver,
    CanListStoredFeatures,
    FeatureScopeable,
)

from .exceptions import (
    FeatureError,
    AmbiguousScopeError,
    InvalidDriverError,
    ScopeSerializationError,
    FeatureInactiveError,
)

from .events import (
    FeatureEvent,
    FeatureResolved,
    UnknownFeatureResolved,
    DynamicallyRegisteringFeature,
    FeatureUpdated,
    FeatureUpdatedForAllScopes,
    FeatureDeleted,
    FeaturesPurged,
    AllFeaturesPurged,
)

from .lottery import Lottery
from .registry import ResolverRegistry, UNKNOWN, feature_name
from .scope import serialize_scope

from .decorator import Decorator
from .interaction import PendingScopedFeatureInteraction
from .manager import FeatureManager

from .decorators import require_features
from .concerns import HasFeatures

from .backends import (
    ArrayFeatureDriver,
    DatabaseFeatureDriver,
    RedisFeatureDriver,
)

__all__ = [
    # Interfaces
    "FeatureDriver",
    "CanListStoredFeatures",
    "FeatureScopeable",
    # Exceptions
    "FeatureError",
    "AmbiguousScopeError",
    "InvalidDriverError",
    "ScopeSerializationError",
    "FeatureInactiveError",
    # Events
    "FeatureEvent",
    "FeatureResolved",
    "UnknownFeatureResolved",
    "DynamicallyRegisteringFeature",
    "FeatureUpdated",
    "FeatureUpdatedForAllScopes",
    "FeatureDeleted",
    "FeaturesPurged",
    "AllFeaturesPurged",
    # Resolution
    "Lottery",
    "ResolverRegistry",
    "UNKNOWN",
    "feature_name",
    "serialize_scope",
    # Manager
    "Decorator",
    "PendingScopedFeatureInteraction",
    "FeatureManager",
    # Decorators and mixins
    "require_features",
    "HasFeatures",
    # Backends
    "ArrayFeatureDriver",
    "DatabaseFeatureDriver",
    "RedisFeatureDriver",
]
