"""
Request/response middleware.

Only access logging ships with the guestbook; ``Middleware`` and
``MiddlewarePipeline`` are the extension points for anything else.
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog, log_requests

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
    "log_requests",
]
