from .registry import PluginNotFoundError, PluginRegistry

__all__ = ["PluginNotFoundError", "PluginRegistry"]
