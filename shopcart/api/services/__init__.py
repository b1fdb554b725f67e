"""
API Services
Business services sitting between the routers and the SaaS clients.
"""

from .cache_service import CacheService, get_cache_service
from .checkout_service import CheckoutService
from .employee_service import EmployeeOrderService
from .notification_service import NotificationService
from .subscription_service import cleanup_duplicate_subscriptions
from .user_sync_service import UserSyncService

__all__ = [
    "CacheService",
    "get_cache_service",
    "CheckoutService",
    "EmployeeOrderService",
    "NotificationService",
    "UserSyncService",
    "cleanup_duplicate_subscriptions",
]
