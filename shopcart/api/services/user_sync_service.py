"""
User Sync Service
Mirrors Clerk accounts into Sanity ``user`` documents and toggles their activation.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import APIError, InvalidRequestError, ResourceNotFoundError
from ...clients import ClerkClient, ClerkUser, SanityClient

logger = logging.getLogger(__name__)

SANITY_USER_QUERY = '*[_type == "user" && clerkUserId == $clerkUserId][0]'
ACTIVE_USERS_QUERY = '*[_type == "user" && clerkUserId in $ids]{ clerkUserId, isActive, _id }'

DEFAULT_PREFERENCES = {
    "emailNotifications": True,
    "smsNotifications": False,
    "newsletter": False,
    "preferredCurrency": "USD",
    "preferredLanguage": "en",
}


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def new_user_document(clerk_user: ClerkUser, admin_email: str) -> Dict[str, Any]:
    """Fresh, active Sanity user for a Clerk account."""
    now = _now()
    return {
        "_type": "user",
        "clerkUserId": clerk_user.id,
        "email": clerk_user.email,
        "firstName": clerk_user.first_name or "",
        "lastName": clerk_user.last_name or "",
        "profileImageUrl": clerk_user.image_url or "",
        "isActive": True,
        "activatedAt": now,
        "activatedBy": admin_email,
        "createdAt": now,
        "updatedAt": now,
        "preferences": dict(DEFAULT_PREFERENCES),
        "loyaltyPoints": 0,
        "rewardPoints": 0,
        "totalSpent": 0,
        "notifications": [],
        "wishlist": [],
        "cart": [],
        "orders": [],
    }


class UserSyncService:
    """Create-or-activate operations shared by the admin routes and Celery tasks."""

    def __init__(self, clerk: ClerkClient, sanity: SanityClient):
        self.clerk = clerk
        self.sanity = sanity

    async def _clerk_user(self, clerk_user_id: str) -> ClerkUser:
        clerk_user = await self.clerk.get_user(clerk_user_id)
        if clerk_user is None:
            raise ResourceNotFoundError("User", message="User not found in Clerk")
        if not clerk_user.email:
            raise InvalidRequestError("User email not found")
        return clerk_user

    async def _activate(
        self, existing: Optional[Dict[str, Any]], clerk_user: ClerkUser, admin_email: str
    ) -> Dict[str, Any]:
        if existing:
            now = _now()
            return await self.sanity.patch(
                existing["_id"],
                set={"isActive": True, "activatedAt": now, "activatedBy": admin_email, "updatedAt": now},
            )
        return await self.sanity.create(new_user_document(clerk_user, admin_email))

    async def sync_user(self, clerk_user_id: str, admin_email: str) -> Dict[str, Any]:
        """
        Sync one Clerk user.

        Returns:
            Result entry with ``action`` of ``created``, ``activated`` or
            ``already_active``; failures are reported, not raised
        """
        try:
            clerk_user = await self._clerk_user(clerk_user_id)
            existing = await self.sanity.fetch(SANITY_USER_QUERY, {"clerkUserId": clerk_user_id})
            if existing and existing.get("isActive"):
                return {
                    "clerkUserId": clerk_user_id,
                    "success": True,
                    "action": "already_active",
                    "sanityId": existing["_id"],
                }

            document = await self._activate(existing, clerk_user, admin_email)
            return {
                "clerkUserId": clerk_user_id,
                "success": True,
                "action": "activated" if existing else "created",
                "sanityId": (existing or document).get("_id"),
            }
        except APIError as e:
            logger.warning(f"Sync failed for {clerk_user_id}: {e.message}")
            return {"clerkUserId": clerk_user_id, "success": False, "error": e.message}

    async def sync_users(self, clerk_user_ids: List[str], admin_email: str) -> Dict[str, Any]:
        # Sequential: Clerk rate-limits Backend API calls per instance.
        results = [await self.sync_user(uid, admin_email) for uid in clerk_user_ids]
        successful = sum(1 for r in results if r["success"])
        failed = len(results) - successful

        logger.info(f"Synced {len(results)} Clerk users to Sanity: {successful} ok, {failed} failed")
        return {
            "success": True,
            "message": (
                f"Processed {len(clerk_user_ids)} users: {successful} successful, {failed} failed"
            ),
            "results": results,
            "summary": {"total": len(clerk_user_ids), "successful": successful, "failed": failed},
        }

    async def set_active(self, clerk_user_id: str, active: bool, admin_email: str) -> Dict[str, Any]:
        """Activate (creating when needed) or deactivate a user's Sanity document."""
        clerk_user = await self._clerk_user(clerk_user_id)
        existing = await self.sanity.fetch(SANITY_USER_QUERY, {"clerkUserId": clerk_user_id})

        if active:
            await self._activate(existing, clerk_user, admin_email)
        else:
            if not existing:
                raise ResourceNotFoundError("User", message="User not found in Sanity")
            await self.sanity.patch(existing["_id"], set={"isActive": False, "updatedAt": _now()})

        verb = "activated" if active else "deactivated"
        return {
            "success": True,
            "message": f"User {clerk_user.full_name} has been {verb} in Sanity",
            "user": {
                "id": clerk_user_id,
                "email": clerk_user.email,
                "firstName": clerk_user.first_name,
                "lastName": clerk_user.last_name,
                "isActive": active,
            },
        }

    async def delete_sanity_user(self, clerk_user_id: str) -> Dict[str, Any]:
        clerk_user = await self._clerk_user(clerk_user_id)
        existing = await self.sanity.fetch(SANITY_USER_QUERY, {"clerkUserId": clerk_user_id})
        if not existing:
            raise ResourceNotFoundError("User", message="User not found in Sanity")

        await self.sanity.delete(existing["_id"])
        logger.info(f"Sanity user {existing['_id']} deleted for Clerk user {clerk_user_id}")
        return {
            "success": True,
            "message": f"User {clerk_user.full_name} has been deleted from Sanity",
            "user": {
                "id": clerk_user_id,
                "email": clerk_user.email,
                "firstName": clerk_user.first_name,
                "lastName": clerk_user.last_name,
                "deleted": True,
            },
        }

    async def activation_states(self, clerk_user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """Map Clerk id to its Sanity ``{isActive, sanityId}``."""
        if not clerk_user_ids:
            return {}
        rows = await self.sanity.fetch(ACTIVE_USERS_QUERY, {"ids": clerk_user_ids}) or []
        return {
            row["clerkUserId"]: {"isActive": bool(row.get("isActive")), "sanityId": row.get("_id")}
            for row in rows
        }
