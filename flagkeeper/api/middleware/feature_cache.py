"""
Middleware flushing the feature cache after each request.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from flagkeeper.core.features.manager import FeatureManager

logger = logging.getLogger(__name__)


class FlushFeatureCacheMiddleware(BaseHTTPMiddleware):
    """
    Flush resolved feature values when a request finishes.

    Long-lived workers serve many requests with one FeatureManager; without
    the flush, values resolved for one request would leak into the next.

    Usage:
        app.add_middleware(FlushFeatureCacheMiddleware, manager=features)
    """

    def __init__(self, app: ASGIApp, manager: FeatureManager):
        super().__init__(app)
        self.manager = manager

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        finally:
            self.manager.flush_cache()
            logger.debug(
                "Feature cache flushed",
                extra={"method": request.method, "path": request.url.path},
            )
