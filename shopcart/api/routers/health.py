"""
Health Check Endpoints
Endpoints for health checks and status monitoring.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ..dependencies import get_cache, get_sanity_client
from ..errors import UpstreamServiceError
from ..middleware.timing import get_latency_tracker
from ..services.cache_service import CacheService
from ...clients import SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check.

    Returns:
        Simple health status
    """
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


@router.get("/metrics", status_code=status.HTTP_200_OK)
async def get_metrics() -> Dict[str, Any]:
    """
    Get performance metrics.

    Returns:
        Latency statistics and performance metrics
    """
    stats = get_latency_tracker().get_stats()

    return {
        "requests": {
            "total": stats["total"],
            "window": stats["count"],
            "server_errors": stats["errors"],
        },
        "latency": {
            "p50_ms": round(stats["p50"], 2),
            "p95_ms": round(stats["p95"], 2),
            "p99_ms": round(stats["p99"], 2),
            "mean_ms": round(stats["mean"], 2),
            "min_ms": round(stats["min"], 2),
            "max_ms": round(stats["max"], 2),
        },
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/cache/stats", status_code=status.HTTP_200_OK)
async def get_cache_stats(cache: CacheService = Depends(get_cache)) -> Dict[str, Any]:
    """Cache hit rate and operation counts."""
    return {"cache": cache.get_statistics(), "timestamp": datetime.utcnow().isoformat()}


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
) -> Dict[str, str]:
    """
    Readiness check.

    The service is ready when Sanity answers a trivial query. Redis state is
    reported but does not affect readiness.
    """
    try:
        await sanity.ping()
    except UpstreamServiceError as e:
        logger.error(f"Readiness check failed: {e.message}")
        return {"status": "not_ready", "reason": e.message}

    return {"status": "ready", "cache": cache.status(), "timestamp": datetime.utcnow().isoformat()}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> Dict[str, str]:
    """Liveness check."""
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}
