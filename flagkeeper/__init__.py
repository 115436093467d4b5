"""
flagkeeper - feature flags with per-scope values and pluggable storage.
"""

from flagkeeper.core.features import (
    FeatureManager,
    FeatureScopeable,
    HasFeatures,
    Lottery,
    require_features,
)

__version__ = "0.1.0"

__all__ = [
    "FeatureManager",
    "FeatureScopeable",
    "HasFeatures",
    "Lottery",
    "require_features",
    "__version__",
]
