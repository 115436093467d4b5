"""
Hook manager for feature lifecycle events.
"""
from __future__ import annotations

from typing import Callable, Any, TypeVar, ParamSpec
from dataclasses import dataclass, field
from enum import IntEnum
from itertools import count
import logging

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# A hook name, or an event class carrying a ``hook_name``
HookTarget = str | type


class HookPriority(IntEnum):
    """Listener priority (lower runs first)."""
    FIRST = 0
    EARLY = 25
    NORMAL = 50
    LATE = 75
    LAST = 100


@dataclass
class Listener:
    """A handler listening to one hook name or wildcard."""
    name: str
    handler: Callable[..., Any]
    priority: HookPriority = HookPriority.NORMAL
    once: bool = False
    source: str = ""
    order: int = 0

    def matches(self, hook_name: str) -> bool:
        if self.name.endswith(".*"):
            return hook_name.startswith(self.name[:-1])
        return self.name == hook_name


@dataclass
class HookResult:
    """Outcome of one trigger."""
    hook_name: str
    results: list[Any] = field(default_factory=list)
    errors: list[tuple[str, Exception]] = field(default_factory=list)
    stopped: bool = False


def hook_name_of(target: HookTarget) -> str:
    return target if isinstance(target, str) else target.hook_name


class HookManager:
    """
    Dispatches feature events to listeners.

    Hooks emitted by the feature system:
    - feature.resolved: A resolver produced an initial value
    - feature.unknown_resolved: An undefined feature was checked
    - feature.dynamically_registering: A feature class is being defined on first use
    - feature.updated: A value was set for one scope
    - feature.updated_for_all_scopes: A value was set for every stored scope
    - feature.deleted: A stored value was removed
    - feature.purged: Named features were purged
    - feature.all_purged: Every feature was purged

    Listeners subscribe by hook name, by event class, or to a wildcard such
    as ``"feature.*"``. A failing listener is logged and recorded in the
    HookResult; it never breaks the feature operation that emitted the event.

    Example usage:
    ```python
    hooks = HookManager()

    @hooks.on(UnknownFeatureResolved)
    def report_unknown(event):
        sentry.capture_message(f"Unknown feature {event.feature}")

    hooks.listen("feature.*", audit_log.record, priority=HookPriority.LAST)

    manager = FeatureManager(hooks=hooks)
    ```
    """

    def __init__(self):
        self._listeners: list[Listener] = []
        self._order = count()

    def listen(
        self,
        target: HookTarget,
        handler: Callable[..., Any],
        *,
        priority: HookPriority = HookPriority.NORMAL,
        once: bool = False,
        source: str = "",
    ) -> Listener:
        """Subscribe a handler to a hook name, event class or wildcard."""
        listener = Listener(
            name=hook_name_of(target),
            handler=handler,
            priority=priority,
            once=once,
            source=source or getattr(handler, "__module__", "") or "",
            order=next(self._order),
        )
        self._listeners.append(listener)
        self._listeners.sort(key=lambda l: (l.priority, l.order))

        logger.debug("Listening to %s (priority=%s)", listener.name, priority.name)
        return listener

    def on(
        self,
        target: HookTarget,
        *,
        priority: HookPriority = HookPriority.NORMAL,
        once: bool = False,
    ) -> Callable[[Callable[P, R]], Callable[P, R]]:
        """Decorator form of ``listen``."""
        def decorator(func: Callable[P, R]) -> Callable[P, R]:
            self.listen(target, func, priority=priority, once=once)
            return func
        return decorator

    def forget(self, target: HookTarget, handler: Callable | None = None) -> int:
        """
        Remove listeners of a hook name or wildcard.

        Only the given handler is removed when one is passed. Returns the
        number of listeners removed.
        """
        name = hook_name_of(target)
        kept = [
            l for l in self._listeners
            if l.name != name or (handler is not None and l.handler is not handler)
        ]
        removed = len(self._listeners) - len(kept)
        self._listeners = kept
        return removed

    def trigger(
        self,
        name: str,
        *args,
        stop_on_error: bool = False,
        stop_on_false: bool = False,
        **kwargs,
    ) -> HookResult:
        """
        Call every listener matching ``name``, in priority order.

        Args:
            name: Hook name to trigger
            stop_on_error: Stop at the first listener that raises
            stop_on_false: Stop at the first listener returning False
            *args, **kwargs: Passed to listeners
        """
        result = HookResult(hook_name=name)

        for listener in [l for l in self._listeners if l.matches(name)]:
            if listener.once:
                self._listeners.remove(listener)

            try:
                value = listener.handler(*args, **kwargs)
            except Exception as e:
                result.errors.append((listener.source, e))
                logger.exception("Listener %s failed for %s", listener.source, name)

                if stop_on_error:
                    result.stopped = True
                    break
                continue

            result.results.append(value)
            if stop_on_false and value is False:
                result.stopped = True
                break

        return result

    def dispatch(self, event: Any) -> HookResult:
        """Trigger the hook named by ``event.hook_name``, passing the event."""
        return self.trigger(event.hook_name, event)

    def has_listeners(self, target: HookTarget) -> bool:
        """Whether anything would receive the hook (wildcards included)."""
        name = hook_name_of(target)
        return any(l.matches(name) for l in self._listeners)

    def listening(self, prefix: str = "") -> list[str]:
        """Sorted names listened to, optionally filtered by prefix."""
        return sorted({l.name for l in self._listeners if l.name.startswith(prefix)})

    def clear(self) -> None:
        """Remove every listener."""
        self._listeners.clear()
