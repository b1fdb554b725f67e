"""
Cache Service
Response caching for expensive Sanity/Clerk aggregates.
"""

import logging
import time
from collections import defaultdict
from typing import Any, Dict, Optional

from ..config import get_settings
from ...caching import RedisCache

logger = logging.getLogger(__name__)


class CacheKeys:
    """Key builders for cached payloads."""

    ADMIN_STATS = "admin:stats"

    @staticmethod
    def admin_analytics(period: str) -> str:
        return f"admin:analytics:{period}"

    @staticmethod
    def user_orders(clerk_user_id: str) -> str:
        return f"user:{clerk_user_id}:orders"

    @staticmethod
    def user_order_count(clerk_user_id: str) -> str:
        return f"user:{clerk_user_id}:orders:count"

    @staticmethod
    def order(order_id: str) -> str:
        return f"order:{order_id}"

    @staticmethod
    def product_reviews(product_id: str) -> str:
        return f"product:{product_id}:reviews"

    @staticmethod
    def user_pattern(clerk_user_id: str) -> str:
        return f"user:{clerk_user_id}:*"


class CacheStatistics:
    """Track cache performance metrics."""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0

        self.hits_by_type: Dict[str, int] = defaultdict(int)
        self.misses_by_type: Dict[str, int] = defaultdict(int)

        self.start_time = time.time()

    def record_hit(self, key_type: str):
        self.hits += 1
        self.hits_by_type[key_type] += 1

    def record_miss(self, key_type: str):
        self.misses += 1
        self.misses_by_type[key_type] += 1

    def get_hit_rate(self) -> float:
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "uptime_seconds": time.time() - self.start_time,
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "hit_rate_percent": self.get_hit_rate(),
            "hits_by_type": dict(self.hits_by_type),
            "misses_by_type": dict(self.misses_by_type),
        }


class CacheService:
    """
    Typed get/set over RedisCache with hit statistics.

    When caching is disabled every lookup is a miss and writes are no-ops.
    """

    def __init__(self, cache: Optional[RedisCache] = None, enabled: Optional[bool] = None):
        settings = get_settings()
        self.enabled = settings.enable_cache if enabled is None else enabled
        self.cache = cache if cache is not None else (
            RedisCache(settings.redis_url) if self.enabled else None
        )
        self.stats = CacheStatistics()

    def get(self, key: str, key_type: str = "generic") -> Optional[Any]:
        if not self.enabled or self.cache is None:
            return None

        value = self.cache.get(key)
        if value is None:
            self.stats.record_miss(key_type)
            logger.debug(f"Cache MISS: {key}")
        else:
            self.stats.record_hit(key_type)
            logger.debug(f"Cache HIT: {key}")
        return value

    def set(self, key: str, value: Any, ttl: int) -> bool:
        if not self.enabled or self.cache is None:
            return False
        stored = self.cache.set(key, value, ttl=ttl)
        if stored:
            self.stats.sets += 1
        return stored

    def invalidate(self, *keys: str) -> None:
        if not self.enabled or self.cache is None:
            return
        for key in keys:
            if self.cache.delete(key):
                self.stats.deletes += 1

    def invalidate_pattern(self, pattern: str) -> None:
        if not self.enabled or self.cache is None:
            return
        self.stats.deletes += self.cache.delete_pattern(pattern)

    def invalidate_order(self, order_id: Optional[str], clerk_user_id: Optional[str]) -> None:
        """Drop every cached payload an order write can affect."""
        keys = [CacheKeys.ADMIN_STATS]
        if order_id:
            keys.append(CacheKeys.order(order_id))
        self.invalidate(*keys)
        if clerk_user_id:
            self.invalidate_pattern(CacheKeys.user_pattern(clerk_user_id))

    def status(self) -> str:
        """``disabled``, ``ok`` or ``unavailable``; Redis being down never blocks requests."""
        if not self.enabled or self.cache is None:
            return "disabled"
        return "ok" if self.cache.ping() else "unavailable"

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.stats.get_stats()
        stats["enabled"] = self.enabled
        return stats


# Global cache service instance
_cache_service: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get global cache service instance."""
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service
