"""
API Routers
"""

from .health import router as health_router
from .addresses import router as addresses_router
from .orders import router as orders_router
from .checkout import router as checkout_router
from .user import router as user_router, user_data_router
from .admin_accounts import router as admin_accounts_router
from .admin_users import router as admin_users_router
from .admin_stats import router as admin_stats_router
from .admin_notifications import router as admin_notifications_router
from .admin_subscriptions import router as admin_subscriptions_router
from .admin_reviews import router as admin_reviews_router
from .admin_employees import router as admin_employees_router
from .admin_withdrawals import router as admin_withdrawals_router
from .employee import router as employee_router
from .reviews import router as reviews_router
from .contact import router as contact_router
from .analytics import router as analytics_router
from .seo import router as seo_router

__all__ = [
    "health_router",
    "addresses_router",
    "orders_router",
    "checkout_router",
    "user_router",
    "user_data_router",
    "admin_accounts_router",
    "admin_users_router",
    "admin_stats_router",
    "admin_notifications_router",
    "admin_subscriptions_router",
    "admin_reviews_router",
    "admin_employees_router",
    "admin_withdrawals_router",
    "employee_router",
    "reviews_router",
    "contact_router",
    "analytics_router",
    "seo_router",
]
