"""
Celery signal handlers.

Usage:
    from celery import Celery
    from flagkeeper.worker import connect_cache_flush

    app = Celery("worker", broker=settings.broker_url)
    disconnect = connect_cache_flush(features)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from celery.signals import task_postrun, task_prerun

from flagkeeper.core.features.manager import FeatureManager

logger = logging.getLogger(__name__)


def connect_cache_flush(manager: FeatureManager) -> Callable[[], None]:
    """
    Flush the feature cache before and after every task.

    Returns a callable disconnecting both handlers.
    """
    def flush(sender: Any = None, task_id: str | None = None, **kwargs: Any) -> None:
        manager.flush_cache()
        logger.debug("Feature cache flushed (task=%s)", task_id)

    task_prerun.connect(flush, weak=False)
    task_postrun.connect(flush, weak=False)

    def disconnect() -> None:
        task_prerun.disconnect(flush)
        task_postrun.disconnect(flush)

    return disconnect
