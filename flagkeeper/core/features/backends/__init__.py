"""Feature storage drivers."""

from .memory import ArrayFeatureDriver
from .database import DatabaseFeatureDriver
from .redis import RedisFeatureDriver

__all__ = [
    "ArrayFeatureDriver",
    "DatabaseFeatureDriver",
    "RedisFeatureDriver",
]
