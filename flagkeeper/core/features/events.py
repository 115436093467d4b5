"""
Feature lifecycle events.

Each event is dispatched through ``HookManager.dispatch`` under its
``hook_name``; handlers receive the event instance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FeatureEvent:
    """Base event structure."""
    hook_name: ClassVar[str] = "feature"

    timestamp: datetime = field(default_factory=_utc_now, kw_only=True)


@dataclass
class FeatureResolved(FeatureEvent):
    """A resolver computed the initial value for a scope."""
    hook_name: ClassVar[str] = "feature.resolved"

    feature: str
    scope: Any
    value: Any


@dataclass
class UnknownFeatureResolved(FeatureEvent):
    """A feature without a resolver was checked."""
    hook_name: ClassVar[str] = "feature.unknown_resolved"

    feature: str
    scope: Any


@dataclass
class DynamicallyRegisteringFeature(FeatureEvent):
    """A feature class is being defined on first use."""
    hook_name: ClassVar[str] = "feature.dynamically_registering"

    feature_class: type


@dataclass
class FeatureUpdated(FeatureEvent):
    hook_name: ClassVar[str] = "feature.updated"

    feature: str
    scope: Any
    value: Any


@dataclass
class FeatureUpdatedForAllScopes(FeatureEvent):
    hook_name: ClassVar[str] = "feature.updated_for_all_scopes"

    feature: str
    value: Any


@dataclass
class FeatureDeleted(FeatureEvent):
    hook_name: ClassVar[str] = "feature.deleted"

    feature: str
    scope: Any


@dataclass
class FeaturesPurged(FeatureEvent):
    hook_name: ClassVar[str] = "feature.purged"

    features: list[str]


@dataclass
class AllFeaturesPurged(FeatureEvent):
    hook_name: ClassVar[str] = "feature.all_purged"
