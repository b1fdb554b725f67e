"""
Middleware
Request logging and latency tracking for the ShopCart API.
"""

from .logging import RequestLoggingMiddleware
from .timing import RequestTimingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "RequestTimingMiddleware",
]
