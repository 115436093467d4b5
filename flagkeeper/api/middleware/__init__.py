"""
Middleware for Starlette / FastAPI applications.
"""

from .feature_cache import FlushFeatureCacheMiddleware

__all__ = ["FlushFeatureCacheMiddleware"]
