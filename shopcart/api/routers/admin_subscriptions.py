"""
Admin newsletter subscription routes.
"""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_sanity_client, require_admin
from ..errors import ResourceNotFoundError
from ..services.subscription_service import cleanup_duplicate_subscriptions
from ...clients import ClerkUser, SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/subscriptions", tags=["Admin"])

SUBSCRIPTIONS_QUERY = """*[_type == "subscription"] | order(subscribedAt desc) {
  _id, email, status, subscribedAt, unsubscribedAt, source, ipAddress, userAgent
}"""
SUBSCRIPTION_QUERY = '*[_type == "subscription" && _id == $subscriptionId][0]'


@router.get("")
async def list_subscriptions(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    subscriptions = await sanity.fetch(SUBSCRIPTIONS_QUERY) or []
    return {"subscriptions": subscriptions, "total": len(subscriptions)}


@router.delete("/{subscription_id}")
async def delete_subscription(
    subscription_id: str,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    existing = await sanity.fetch(SUBSCRIPTION_QUERY, {"subscriptionId": subscription_id})
    if not existing:
        raise ResourceNotFoundError("Subscription", subscription_id)

    await sanity.delete(subscription_id)
    logger.info(f"Subscription {subscription_id} deleted by {admin.email}")
    return {"success": True, "message": "Subscription deleted successfully"}


@router.post("/cleanup-duplicates")
async def cleanup_duplicates(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Keep the oldest subscription per email and delete the rest."""
    return await cleanup_duplicate_subscriptions(sanity)
