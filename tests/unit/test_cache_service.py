"""
Tests for the Redis cache wrapper and cache service.
"""

import json
from unittest.mock import MagicMock

import redis

from shopcart.api.services.cache_service import CacheKeys, CacheService
from shopcart.caching import RedisCache


def make_service():
    client = MagicMock()
    return CacheService(cache=RedisCache(client=client), enabled=True), client


def test_get_hit_and_miss_are_counted():
    service, client = make_service()
    client.get.side_effect = [json.dumps({"count": 3}).encode(), None]

    assert service.get("user:u1:orders:count", key_type="order_count") == {"count": 3}
    assert service.get("user:u1:orders:count", key_type="order_count") is None

    stats = service.get_statistics()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate_percent"] == 50.0
    assert stats["hits_by_type"] == {"order_count": 1}
    assert stats["enabled"] is True


def test_set_uses_ttl():
    service, client = make_service()
    client.setex.return_value = True

    assert service.set("admin:stats", {"totalOrders": 4}, ttl=60)
    client.setex.assert_called_once_with("admin:stats", 60, json.dumps({"totalOrders": 4}))
    assert service.stats.sets == 1


def test_redis_errors_are_misses():
    service, client = make_service()
    client.get.side_effect = redis.ConnectionError("down")

    assert service.get("order:o1") is None


def test_disabled_cache_is_a_no_op():
    client = MagicMock()
    service = CacheService(cache=RedisCache(client=client), enabled=False)

    assert service.get("order:o1") is None
    assert service.set("order:o1", {}, ttl=5) is False
    service.invalidate("order:o1")

    client.get.assert_not_called()
    client.delete.assert_not_called()


def test_invalidate_order_drops_related_keys():
    service, client = make_service()
    client.delete.return_value = 1
    client.scan_iter.return_value = iter(
        [CacheKeys.user_orders("u1").encode(), CacheKeys.user_order_count("u1").encode()]
    )

    service.invalidate_order("o1", "u1")

    deleted = [call.args for call in client.delete.call_args_list]
    assert deleted == [
        (CacheKeys.ADMIN_STATS,),
        (CacheKeys.order("o1"),),
        (CacheKeys.user_orders("u1").encode(), CacheKeys.user_order_count("u1").encode()),
    ]
    client.scan_iter.assert_called_once_with(match="user:u1:*")
    assert service.stats.deletes == 3


def test_status_reports_redis_health():
    service, client = make_service()
    client.ping.return_value = True
    assert service.status() == "ok"

    client.ping.side_effect = redis.ConnectionError("down")
    assert service.status() == "unavailable"

    assert CacheService(enabled=False).status() == "disabled"
