"""
Redis Cache Client
JSON-serializing Redis wrapper with a shared connection pool.
"""

import json
import logging
from typing import Any, Optional

import redis
from redis.connection import ConnectionPool

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Redis cache client.

    Values are stored as JSON. Redis failures are logged and reported as
    misses so a cache outage never fails a request.
    """

    def __init__(self, url: str = "redis://localhost:6379/1", client: Optional[redis.Redis] = None):
        """
        Args:
            url: Redis connection URL
            client: Pre-built client (tests pass a mock here)
        """
        self.url = url
        self.pool: Optional[ConnectionPool] = None
        self.client = client

        if self.client is None:
            self.pool = ConnectionPool.from_url(
                url,
                max_connections=20,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            self.client = redis.Redis(connection_pool=self.pool)
            logger.info(f"Redis cache initialized: {url.rsplit('@', 1)[-1]}")

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None."""
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis GET error for key '{key}': {e}")
            return None

        if data is None:
            return None

        try:
            return json.loads(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Error deserializing cached data for key '{key}': {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a JSON-serializable value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (None = no expiration)

        Returns:
            True if stored
        """
        try:
            data = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Error serializing data for key '{key}': {e}")
            return False

        try:
            if ttl is not None:
                self.client.setex(key, ttl, data)
            else:
                self.client.set(key, data)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis SET error for key '{key}': {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return self.client.delete(key) > 0
        except redis.RedisError as e:
            logger.error(f"Redis DELETE error for key '{key}': {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Key pattern (e.g., "user:*")

        Returns:
            Number of keys deleted
        """
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if not keys:
                return 0
            return self.client.delete(*keys)
        except redis.RedisError as e:
            logger.error(f"Redis DELETE PATTERN error for pattern '{pattern}': {e}")
            return 0

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis PING error: {e}")
            return False
