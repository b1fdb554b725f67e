"""
Admin notification routes.
Dashboard activity feed and broadcast notifications to customers.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_notification_service, get_sanity_client, require_admin
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.admin import SendNotificationRequest
from ..services.notification_service import NotificationService
from ...clients import ClerkUser, SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/notifications", tags=["Admin"])

FEED_LIMIT = 15

RECENT_ORDERS_QUERY = """*[_type == "order"] | order(_createdAt desc) [0...10] {
  _id, _createdAt, orderNumber, customerName, email, totalPrice, status
}"""
LOW_STOCK_QUERY = """*[_type == "product" && stock < 10] | order(_createdAt desc) [0...5] {
  _id, name, stock
}"""
SENT_NOTIFICATION_QUERY = '*[_type == "sentNotification" && _id == $id][0]'
SENT_FIELDS = """{
  _id, notificationId, title, message, type, priority, sentAt, sentBy,
  actionUrl, recipientCount, recipients
}"""


def time_ago(then: datetime, now: Optional[datetime] = None) -> str:
    """Relative time for the feed: "just now", "N min ago", "N hours ago", "N days ago"."""
    now = now or datetime.utcnow()
    minutes = int((now - then).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def _parse_timestamp(value: str) -> datetime:
    # Sanity timestamps are UTC with a trailing Z
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def build_feed(
    orders: List[Dict[str, Any]], products: List[Dict[str, Any]], now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    feed = []
    for order in orders:
        label = order.get("orderNumber") or f"#{order['_id'][-6:]}"
        created = order.get("_createdAt")
        feed.append(
            {
                "id": f"order-{order['_id']}",
                "title": f"New order {label}",
                "description": f"{order.get('customerName') or order.get('email')} - ${order.get('totalPrice')}",
                "time": time_ago(_parse_timestamp(created), now) if created else "",
                "type": "order",
                "icon": "shopping-cart",
            }
        )
    for product in products:
        feed.append(
            {
                "id": f"stock-{product['_id']}",
                "title": "Low stock alert",
                "description": f"{product.get('name')} - Only {product.get('stock')} left",
                "time": "Today",
                "type": "warning",
                "icon": "alert-triangle",
            }
        )
    return feed[:FEED_LIMIT]


def _sent_filters(
    type: str, priority: str, date_filter: str, now: datetime
) -> Tuple[str, Dict[str, Any]]:
    conditions = ['_type == "sentNotification"']
    params: Dict[str, Any] = {}
    if type and type != "all":
        conditions.append("type == $type")
        params["type"] = type
    if priority and priority != "all":
        conditions.append("priority == $priority")
        params["priority"] = priority

    since = None
    if date_filter == "today":
        since = datetime(now.year, now.month, now.day)
    elif date_filter == "week":
        since = now - timedelta(days=7)
    elif date_filter == "month":
        since = datetime(now.year, now.month, 1)
    if since is not None:
        conditions.append("sentAt >= $since")
        params["since"] = since.isoformat() + "Z"

    return " && ".join(conditions), params


@router.get("")
async def get_activity_feed(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    orders = await sanity.fetch(RECENT_ORDERS_QUERY) or []
    products = await sanity.fetch(LOW_STOCK_QUERY) or []
    feed = build_feed(orders, products)
    return {"notifications": feed, "count": len(feed)}


@router.post("/send")
async def send_notification(
    body: SendNotificationRequest,
    admin: ClerkUser = Depends(require_admin),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Broadcast a notification to a list of Clerk users.

    With ``runInBackground`` the fan-out is handed to the Celery worker and
    the response only confirms the task was queued.
    """
    if not body.title:
        raise InvalidRequestError("Missing required field: title")
    if not body.message:
        raise InvalidRequestError("Missing required field: message")
    if not body.recipients:
        raise InvalidRequestError("At least one recipient is required")

    payload = {
        "title": body.title,
        "message": body.message,
        "type": body.type,
        "priority": body.priority,
        "action_url": body.action_url,
        "sent_by": body.sent_by or admin.full_name or admin.email,
    }
    await notifications.record_sent_notification(payload, body.recipients)

    if body.run_in_background:
        from ...tasks.notifications import send_bulk_notifications

        task = send_bulk_notifications.delay(body.recipients, payload)
        logger.info(f"Queued notification '{body.title}' to {len(body.recipients)} users as {task.id}")
        return {"success": True, "queued": True, "taskId": task.id}

    result = await notifications.send_bulk_notifications(body.recipients, **payload)
    return {
        "success": True,
        "message": "Notifications sent successfully",
        "stats": {
            "total": result["total"],
            "successful": result["successful"],
            "failed": result["failed"],
        },
    }


@router.get("/sent")
async def list_sent_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    type: str = Query(""),
    priority: str = Query(""),
    date_filter: str = Query("", alias="dateFilter"),
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    where, params = _sent_filters(type, priority, date_filter, datetime.utcnow())
    rows = await sanity.fetch(
        f"*[{where}] | order(sentAt desc) [$start...$end] {SENT_FIELDS}",
        {**params, "start": offset, "end": offset + limit},
    ) or []
    total = await sanity.fetch(f"count(*[{where}])", params) or 0

    notifications = [
        {
            "id": row["_id"],
            "notificationId": row.get("notificationId"),
            "title": row.get("title"),
            "message": row.get("message"),
            "type": row.get("type"),
            "priority": row.get("priority"),
            "sentAt": row.get("sentAt"),
            "sentBy": row.get("sentBy"),
            "actionUrl": row.get("actionUrl"),
            "recipientCount": row.get("recipientCount"),
            "recipients": row.get("recipients") or [],
        }
        for row in rows
    ]
    return {
        "notifications": notifications,
        "totalCount": total,
        "hasNextPage": offset + limit < total,
        "pagination": {
            "limit": limit,
            "offset": offset,
            "total": total,
            "currentPage": offset // limit + 1,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.delete("/{notification_id}")
async def delete_sent_notification(
    notification_id: str,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    existing = await sanity.fetch(SENT_NOTIFICATION_QUERY, {"id": notification_id})
    if not existing:
        raise ResourceNotFoundError("Notification", notification_id)

    await sanity.delete(notification_id)
    return {"success": True, "message": "Notification deleted successfully"}
