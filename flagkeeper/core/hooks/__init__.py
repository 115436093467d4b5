"""
Hook system for feature lifecycle events.
Lets applications observe resolutions, updates and purges.
"""

from .manager import HookManager, HookPriority, HookResult, Listener

__all__ = [
    "HookManager",
    "HookPriority",
    "HookResult",
    "Listener",
]
