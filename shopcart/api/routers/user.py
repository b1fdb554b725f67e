"""
User routes.
Points, settings, notifications and business applications for the signed-in user.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from .orders import count_user_orders
from ..dependencies import (
    get_cache,
    get_current_user,
    get_notification_service,
    get_sanity_client,
)
from ..errors import InvalidRequestError, PermissionDeniedError, ResourceNotFoundError
from ..schemas.user import BusinessApplyRequest, PointsUpdateRequest, UserSettingsUpdate
from ..services.cache_service import CacheService
from ..services.notification_service import USER_BY_CLERK_ID, NotificationService
from ...clients import ClerkUser, SanityClient
from ...models.admin import is_user_admin
from ...models.points import PointsPolicy, calculate_points_update

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["User"])
user_data_router = APIRouter(prefix="/api/user-data", tags=["User"])

POINTS_USER_QUERY = """*[_type == "user" && clerkUserId == $clerkUserId][0]{
  _id,
  rewardPoints,
  loyaltyPoints,
  totalSpent,
  "completedOrders": count(*[_type == "order" && user._ref == ^._id && status == "completed"])
}"""

USER_STATS_QUERY = """*[_type == "user" && clerkUserId == $clerkUserId][0]{
  _id,
  rewardPoints,
  loyaltyPoints,
  totalSpent,
  lastLogin,
  "completedOrders": count(*[_type == "order" && user._ref == ^._id && status == "completed"]),
  "pendingOrders": count(*[_type == "order" && user._ref == ^._id && status in ["pending", "processing"]]),
  "totalOrders": count(*[_type == "order" && user._ref == ^._id])
}"""

USER_BY_EMAIL_QUERY = '*[_type == "user" && email == $email][0]'
ADDRESSES_BY_EMAIL_QUERY = (
    '*[_type == "address" && email == $email] | order(default desc, createdAt desc)'
)
ORDERS_BY_EMAIL_QUERY = '*[_type == "order" && email == $email] | order(orderDate desc)'


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


@router.get("/points")
async def get_points(
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
):
    stats = await sanity.fetch(USER_STATS_QUERY, {"clerkUserId": user.id})
    if not stats:
        raise ResourceNotFoundError("User")
    return {"success": True, "stats": stats}


@router.post("/points")
async def add_order_points(
    body: PointsUpdateRequest,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Credit reward and loyalty points for an order.

    Reward points depend on the order total; loyalty points are granted
    for every Nth completed order.
    """
    if not body.order_total or not body.order_id:
        raise InvalidRequestError("Order total and order ID are required")

    sanity_user = await sanity.fetch(POINTS_USER_QUERY, {"clerkUserId": user.id})
    if not sanity_user:
        raise ResourceNotFoundError("User")

    current_reward = sanity_user.get("rewardPoints") or 0
    current_loyalty = sanity_user.get("loyaltyPoints") or 0
    update = calculate_points_update(
        body.order_total,
        sanity_user.get("completedOrders") or 0,
        current_reward,
        current_loyalty,
        policy=PointsPolicy.from_settings(),
    )

    now = _now()
    updated = await sanity.patch(
        sanity_user["_id"],
        set={
            "rewardPoints": update.reward_points,
            "loyaltyPoints": update.loyalty_points,
            "totalSpent": (sanity_user.get("totalSpent") or 0) + body.order_total,
            "lastLogin": now,
            "updatedAt": now,
        },
    )

    logger.info(
        f"Points credited for order {body.order_id}: "
        f"+{update.new_reward_points} reward, +{update.new_loyalty_points} loyalty"
    )
    return {
        "success": True,
        "user": updated,
        "pointsEarned": {
            "rewardPoints": update.reward_points - current_reward,
            "loyaltyPoints": update.loyalty_points - current_loyalty,
        },
        "messages": update.messages,
    }


@router.patch("/settings")
async def update_settings(
    body: UserSettingsUpdate,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
):
    sanity_user = await sanity.fetch(USER_BY_CLERK_ID, {"clerkUserId": user.id})
    if not sanity_user:
        raise ResourceNotFoundError("User")

    await sanity.patch(
        sanity_user["_id"], set={"preferences": body.preferences, "updatedAt": _now()}
    )
    return {"success": True, "message": "Settings updated successfully"}


@router.get("/notifications")
async def list_notifications(
    user: ClerkUser = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.list_notifications(user.id)


@router.patch("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user: ClerkUser = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    return await notifications.mark_as_read(user.id, notification_id)


@router.get("/orders/count")
async def user_order_count(
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
):
    return {"count": await count_user_orders(sanity, cache, user.id)}


@router.post("/business-apply")
async def apply_for_business(
    body: BusinessApplyRequest,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Submit a business account application for an active premium user."""
    if not body.email:
        raise InvalidRequestError("Email is required")

    existing = await sanity.fetch(USER_BY_EMAIL_QUERY, {"email": body.email})
    if not existing:
        raise ResourceNotFoundError("User", message="Please register for premium services first")
    if not existing.get("isActive"):
        raise InvalidRequestError("Please activate your premium account first")

    business_status = existing.get("businessStatus")
    if business_status == "rejected":
        raise InvalidRequestError(
            "Business account application was rejected. Please contact admin for assistance."
        )
    if business_status == "pending":
        raise InvalidRequestError("Business account application is already pending approval.")
    if existing.get("isBusiness"):
        raise InvalidRequestError("Business account already approved")

    now = _now()
    result = await sanity.patch(
        existing["_id"],
        set={"businessStatus": "pending", "businessAppliedAt": now, "updatedAt": now},
    )

    logger.info(f"Business application submitted by {body.email}")
    return {
        "success": True,
        "message": (
            "Business account application submitted successfully! Your application is "
            "under review and you'll enjoy 2% additional discount once approved."
        ),
        "user": result,
    }


@user_data_router.get("")
async def get_user_data(
    email: str = Query(None),
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
) -> Dict[str, Any]:
    """Addresses and orders for an email; callers may only read their own unless admin."""
    if not email:
        raise InvalidRequestError("Email parameter is required")
    if email.lower() != (user.email or "").lower() and not is_user_admin(user.email):
        raise PermissionDeniedError("Forbidden")

    addresses, orders = await asyncio.gather(
        sanity.fetch(ADDRESSES_BY_EMAIL_QUERY, {"email": email}),
        sanity.fetch(ORDERS_BY_EMAIL_QUERY, {"email": email}),
    )
    return {"addresses": addresses or [], "orders": orders or []}
