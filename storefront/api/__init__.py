"""API package."""

from storefront.api.dependencies import AppServices
from storefront.api.middleware import (
    LoggingMiddleware,
    RateLimitMiddleware,
    SessionRefreshMiddleware,
)
from storefront.api.routes import router

__all__ = [
    "router",
    "AppServices",
    "LoggingMiddleware",
    "RateLimitMiddleware",
    "SessionRefreshMiddleware",
]
