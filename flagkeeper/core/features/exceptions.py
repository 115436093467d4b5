"""
Feature flag exceptions.
"""


class FeatureError(Exception):
    """Base class for feature flag errors."""


class AmbiguousScopeError(FeatureError):
    """Raised when a single value is requested for several scopes."""

    def __init__(self, message: str = "It is not possible to retrieve the values for multiple scopes."):
        super().__init__(message)


class InvalidDriverError(FeatureError):
    """Raised when a store or driver name is not configured."""


class ScopeSerializationError(FeatureError, TypeError):
    """Raised when a scope cannot be turned into a storage key."""


class FeatureInactiveError(FeatureError):
    """Raised by ``require_features`` when a gated feature is inactive."""

    def __init__(self, features: list[str], scope=None):
        self.features = features
        self.scope = scope
        super().__init__(f"Features not active: {', '.join(features)}")
