"""Background worker integrations."""

from .signals import connect_cache_flush

__all__ = ["connect_cache_flush"]
