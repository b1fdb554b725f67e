"""
Tests for Celery tasks, run eagerly in-process.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from shopcart.tasks.notifications import send_bulk_notifications
from shopcart.tasks.subscriptions import cleanup_duplicate_subscriptions_task
from shopcart.tasks.users import sync_clerk_users_to_sanity


def test_bulk_notifications_task_delegates_to_service():
    service = MagicMock()
    service.send_bulk_notifications = AsyncMock(
        return_value={"success": True, "total": 2, "successful": 2, "failed": 0}
    )
    payload = {"title": "Sale", "message": "20% off", "type": "promo"}

    with patch("shopcart.tasks.notifications.get_sanity_client"), patch(
        "shopcart.tasks.notifications.NotificationService", return_value=service
    ):
        result = send_bulk_notifications(["u1", "u2"], payload)

    assert result["successful"] == 2
    service.send_bulk_notifications.assert_awaited_once_with(["u1", "u2"], **payload)


def test_user_sync_task_runs_service():
    service = MagicMock()
    service.sync_users = AsyncMock(return_value={"success": True, "summary": {"total": 1}})

    with patch("shopcart.tasks.users.get_clerk_client"), patch(
        "shopcart.tasks.users.get_sanity_client"
    ), patch("shopcart.tasks.users.UserSyncService", return_value=service):
        result = sync_clerk_users_to_sanity(["user_a"], "admin@shop.test")

    assert result["summary"] == {"total": 1}
    service.sync_users.assert_awaited_once_with(["user_a"], "admin@shop.test")


def test_subscription_cleanup_task():
    cleanup = AsyncMock(return_value={"duplicatesRemoved": 2, "duplicatesFound": 1})

    with patch("shopcart.tasks.subscriptions.get_sanity_client"), patch(
        "shopcart.tasks.subscriptions.cleanup_duplicate_subscriptions", cleanup
    ):
        result = cleanup_duplicate_subscriptions_task()

    assert result["duplicatesRemoved"] == 2
