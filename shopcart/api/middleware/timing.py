"""
Request Timing Middleware
Rolling latency percentiles for the /metrics endpoint.
"""

import logging
import time
from collections import deque
from threading import Lock
from typing import Callable, Dict, List, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import get_settings

logger = logging.getLogger(__name__)

UNTRACKED_PATHS = frozenset({"/health", "/live", "/ready", "/metrics"})


class LatencyTracker:
    """
    Rolling window of request latencies.

    Also counts server errors so /metrics can report an error rate.
    """

    def __init__(self, window_size: int = 1000):
        self.window_size = window_size
        self.latencies: deque = deque(maxlen=window_size)
        self.total_requests = 0
        self.server_errors = 0
        self.lock = Lock()

    def record(self, latency_ms: float, status_code: int = 200) -> None:
        with self.lock:
            self.latencies.append(latency_ms)
            self.total_requests += 1
            if status_code >= 500:
                self.server_errors += 1

    def reset(self) -> None:
        with self.lock:
            self.latencies.clear()
            self.total_requests = 0
            self.server_errors = 0

    def get_stats(self) -> Dict[str, float]:
        """
        Latency statistics over the window.

        Returns:
            Dict with count, total, errors, p50, p95, p99, mean, min, max
        """
        with self.lock:
            stats = {"count": len(self.latencies), "total": self.total_requests, "errors": self.server_errors}
            if not self.latencies:
                stats.update({"p50": 0.0, "p95": 0.0, "p99": 0.0, "mean": 0.0, "min": 0.0, "max": 0.0})
                return stats

            ordered = sorted(self.latencies)
            stats.update(
                {
                    "p50": self._percentile(ordered, 50),
                    "p95": self._percentile(ordered, 95),
                    "p99": self._percentile(ordered, 99),
                    "mean": sum(ordered) / len(ordered),
                    "min": ordered[0],
                    "max": ordered[-1],
                }
            )
            return stats

    @staticmethod
    def _percentile(sorted_values: List[float], percentile: int) -> float:
        if not sorted_values:
            return 0.0
        index = min(int((percentile / 100.0) * len(sorted_values)), len(sorted_values) - 1)
        return sorted_values[index]


_latency_tracker = LatencyTracker()


def get_latency_tracker() -> LatencyTracker:
    """Get global latency tracker."""
    return _latency_tracker


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Record latency per request and warn about slow ones."""

    def __init__(self, app, tracker: Optional[LatencyTracker] = None, slow_ms: Optional[float] = None):
        super().__init__(app)
        self.tracker = tracker or get_latency_tracker()
        self.slow_ms = slow_ms if slow_ms is not None else get_settings().slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        if request.url.path not in UNTRACKED_PATHS:
            self.tracker.record(duration_ms, response.status_code)

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if duration_ms > self.slow_ms:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {duration_ms:.0f}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                },
            )

        return response
