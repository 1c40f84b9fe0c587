"""API middleware for slidesvg."""

from slidesvg.api.middleware.logging import LoggingMiddleware

__all__ = [
    "LoggingMiddleware",
]
