"""
Notification Service
In-document user notifications stored on the Sanity ``user`` document.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..config import get_settings
from ..errors import ResourceNotFoundError
from ...clients import SanityClient

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    PROMO = "promo"
    ORDER = "order"
    SYSTEM = "system"
    MARKETING = "marketing"
    GENERAL = "general"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# status -> (title, message template, priority)
_ORDER_STATUS_MESSAGES: Dict[str, Tuple[str, str, NotificationPriority]] = {
    "pending": (
        "Order Received ✅",
        "Thank you for your order #{n}! We've received it and will confirm it shortly.",
        NotificationPriority.MEDIUM,
    ),
    "address_confirmed": (
        "Address Confirmed",
        "Your delivery address for order #{n} has been confirmed. We're processing your order now.",
        NotificationPriority.MEDIUM,
    ),
    "order_confirmed": (
        "Order Confirmed ✅",
        "Great news! Your order #{n} has been confirmed and will be packed soon.",
        NotificationPriority.HIGH,
    ),
    "packed": (
        "Order Packed 📦",
        "Your order #{n} has been carefully packed and will be dispatched for delivery soon.",
        NotificationPriority.HIGH,
    ),
    "ready_for_delivery": (
        "Ready for Delivery",
        "Order #{n} is ready for delivery and has been assigned to our delivery partner.",
        NotificationPriority.HIGH,
    ),
    "processing": (
        "Order Processing",
        "Great news! Your order #{n} is now being processed. "
        "We're preparing your items for shipment.",
        NotificationPriority.MEDIUM,
    ),
    "paid": (
        "Payment Confirmed ✅",
        "Payment for order #{n} has been successfully confirmed. "
        "Your order will be processed shortly.",
        NotificationPriority.HIGH,
    ),
    "shipped": (
        "Order Shipped! 🚚",
        "Exciting news! Your order #{n} has been shipped and is on its way to you. "
        "You can track your package using the tracking information.",
        NotificationPriority.HIGH,
    ),
    "out_for_delivery": (
        "Out for Delivery 🛵",
        "Your order #{n} is out for delivery! It should arrive at your doorstep today. "
        "Please be available to receive it.",
        NotificationPriority.URGENT,
    ),
    "delivered": (
        "Order Delivered! 🎉",
        "Your order #{n} has been successfully delivered. We hope you enjoy your purchase! "
        "Please leave a review if you're satisfied.",
        NotificationPriority.HIGH,
    ),
    "completed": (
        "Order Completed",
        "Order #{n} has been completed. Thank you for shopping with us!",
        NotificationPriority.MEDIUM,
    ),
    "cancelled": (
        "Order Cancelled",
        "Your order #{n} has been cancelled. If you didn't request this cancellation "
        "or have any questions, please contact our support team.",
        NotificationPriority.URGENT,
    ),
    "rescheduled": (
        "Delivery Rescheduled",
        "The delivery for order #{n} has been rescheduled. "
        "We'll keep you updated with the new delivery date.",
        NotificationPriority.HIGH,
    ),
    "failed_delivery": (
        "Delivery Attempt Failed",
        "We couldn't deliver order #{n}. Our team will contact you to reschedule the delivery.",
        NotificationPriority.URGENT,
    ),
}


def order_status_message(status: str, order_number: str) -> Dict[str, str]:
    """Title, message and priority announcing an order status change."""
    entry = _ORDER_STATUS_MESSAGES.get(status.lower())
    if entry is None:
        return {
            "title": "Order Status Updated",
            "message": f"The status of your order #{order_number} has been updated to: {status}.",
            "priority": NotificationPriority.MEDIUM.value,
        }
    title, template, priority = entry
    return {"title": title, "message": template.format(n=order_number), "priority": priority.value}


USER_BY_CLERK_ID = '*[_type == "user" && clerkUserId == $clerkUserId][0]'


class NotificationService:
    """Creates and updates notifications on user documents."""

    def __init__(self, sanity: SanityClient, base_url: Optional[str] = None):
        self.sanity = sanity
        self.base_url = (base_url or get_settings().base_url).rstrip("/")

    async def create_notification(
        self,
        clerk_user_id: str,
        title: str,
        message: str,
        type: str = NotificationType.GENERAL.value,
        priority: str = NotificationPriority.MEDIUM.value,
        action_url: Optional[str] = None,
        sent_by: str = "System",
    ) -> Dict[str, Any]:
        """
        Prepend a notification to the user's list.

        Returns:
            ``{"success": True, "notification": {...}}`` or
            ``{"success": False, "error": "User not found"}``
        """
        user = await self.sanity.fetch(USER_BY_CLERK_ID, {"clerkUserId": clerk_user_id})
        if not user:
            logger.warning(f"Notification skipped, user not found: {clerk_user_id}")
            return {"success": False, "error": "User not found"}

        notification_id = str(uuid.uuid4())
        notification = {
            "_key": notification_id,
            "id": notification_id,
            "title": title,
            "message": message,
            "type": type,
            "read": False,
            "priority": priority,
            "sentAt": datetime.utcnow().isoformat() + "Z",
            "sentBy": sent_by,
        }
        if action_url:
            notification["actionUrl"] = action_url

        notifications = [notification] + list(user.get("notifications") or [])
        await self.sanity.patch(user["_id"], set={"notifications": notifications})

        logger.info(f"Notification '{title}' created for user {clerk_user_id}")
        return {"success": True, "notification": notification}

    async def send_order_status_notification(
        self, clerk_user_id: str, order_number: str, order_id: str, status: str
    ) -> Dict[str, Any]:
        content = order_status_message(status, order_number)
        return await self.create_notification(
            clerk_user_id=clerk_user_id,
            title=content["title"],
            message=content["message"],
            type=NotificationType.ORDER.value,
            priority=content["priority"],
            action_url=f"{self.base_url}/user/orders/{order_id}",
            sent_by="ShopCart System",
        )

    async def notify_order_status_safely(
        self, clerk_user_id: Optional[str], order_number: str, order_id: str, status: str
    ) -> None:
        """Send an order notification; failures are logged, never raised."""
        if not clerk_user_id:
            return
        try:
            await self.send_order_status_notification(clerk_user_id, order_number, order_id, status)
        except Exception as e:
            logger.error(
                f"Failed to send '{status}' notification for order {order_number}: {e}",
                exc_info=True,
            )

    async def send_bulk_notifications(
        self, user_ids: List[str], **notification: Any
    ) -> Dict[str, Any]:
        """
        Send the same notification to many users concurrently.

        Returns:
            Totals of attempted, successful and failed deliveries
        """
        results = await asyncio.gather(
            *(self.create_notification(clerk_user_id=uid, **notification) for uid in user_ids),
            return_exceptions=True,
        )

        successful = 0
        for uid, result in zip(user_ids, results):
            if isinstance(result, Exception):
                logger.error(f"Bulk notification to {uid} failed: {result}")
            elif result.get("success"):
                successful += 1

        return {
            "success": True,
            "total": len(user_ids),
            "successful": successful,
            "failed": len(user_ids) - successful,
        }

    async def list_notifications(self, clerk_user_id: str) -> Dict[str, Any]:
        user = await self.sanity.fetch(USER_BY_CLERK_ID, {"clerkUserId": clerk_user_id})
        if not user:
            raise ResourceNotFoundError("User")
        notifications = user.get("notifications") or []
        return {
            "notifications": notifications,
            "unreadCount": sum(1 for n in notifications if not n.get("read")),
        }

    async def mark_as_read(self, clerk_user_id: str, notification_id: str) -> Dict[str, Any]:
        user = await self.sanity.fetch(USER_BY_CLERK_ID, {"clerkUserId": clerk_user_id})
        if not user:
            raise ResourceNotFoundError("User")

        notifications = list(user.get("notifications") or [])
        for notification in notifications:
            if notification.get("id") == notification_id:
                notification["read"] = True
                notification["readAt"] = datetime.utcnow().isoformat() + "Z"
                break
        else:
            raise ResourceNotFoundError("Notification", notification_id)

        await self.sanity.patch(user["_id"], set={"notifications": notifications})
        return {"success": True, "message": "Notification marked as read"}

    async def record_sent_notification(
        self, notification: Dict[str, Any], recipients: List[str]
    ) -> Dict[str, Any]:
        """Keep an admin-side log entry of a broadcast."""
        document = {
            "_type": "sentNotification",
            "notificationId": str(uuid.uuid4()),
            "title": notification.get("title"),
            "message": notification.get("message"),
            "type": notification.get("type", NotificationType.GENERAL.value),
            "priority": notification.get("priority", NotificationPriority.MEDIUM.value),
            "sentAt": datetime.utcnow().isoformat() + "Z",
            "sentBy": notification.get("sent_by"),
            "recipientCount": len(recipients),
            "recipients": list(recipients),
        }
        if notification.get("action_url"):
            document["actionUrl"] = notification["action_url"]
        return await self.sanity.create(document)
