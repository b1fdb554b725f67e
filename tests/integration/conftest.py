"""
Integration test fixtures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from shopcart.api.dependencies import (
    get_cache,
    get_clerk_client,
    get_current_user,
    get_notification_service,
    get_sanity_client,
    get_stripe_client,
)
from shopcart.api.main import create_app
from shopcart.api.services.cache_service import CacheService
from shopcart.api.services.notification_service import NotificationService


@pytest.fixture
def notifications():
    service = MagicMock(spec=NotificationService)
    service.notify_order_status_safely = AsyncMock(return_value=None)
    service.record_sent_notification = AsyncMock(return_value={"_id": "sent-1"})
    service.send_bulk_notifications = AsyncMock(
        return_value={"success": True, "total": 0, "successful": 0, "failed": 0}
    )
    service.list_notifications = AsyncMock(return_value={"notifications": [], "unreadCount": 0})
    service.mark_as_read = AsyncMock(
        return_value={"success": True, "message": "Notification marked as read"}
    )
    return service


@pytest.fixture
def app(sanity, clerk, stripe, customer, notifications):
    """Application wired to client doubles, signed in as ``customer``."""
    application = create_app()
    cache = CacheService(enabled=False)
    application.dependency_overrides.update(
        {
            get_sanity_client: lambda: sanity,
            get_clerk_client: lambda: clerk,
            get_stripe_client: lambda: stripe,
            get_cache: lambda: cache,
            get_notification_service: lambda: notifications,
            get_current_user: lambda: customer,
        }
    )
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def sign_in(app):
    """Switch the signed-in user; ``None`` drops the override."""

    def _sign_in(user):
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = lambda: user

    return _sign_in


@pytest.fixture
def client(app):
    return TestClient(app)
