"""
Admin user routes.
Clerk user listing and mirroring of Clerk accounts into Sanity.
"""

import logging

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_clerk_client, get_sanity_client, require_admin
from ..errors import InvalidRequestError
from ..schemas.admin import SyncUsersRequest, UserActivationRequest
from ..services.user_sync_service import UserSyncService
from ...clients import ClerkClient, ClerkUser, SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["Admin"])


def get_user_sync_service(
    clerk: ClerkClient = Depends(get_clerk_client),
    sanity: SanityClient = Depends(get_sanity_client),
) -> UserSyncService:
    return UserSyncService(clerk, sanity)


@router.get("")
async def list_users(
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    query: str = Query(""),
    admin: ClerkUser = Depends(require_admin),
    clerk: ClerkClient = Depends(get_clerk_client),
    sync: UserSyncService = Depends(get_user_sync_service),
):
    """
    Clerk users, newest first, joined with their Sanity activation state.

    Args:
        limit: Page size
        offset: Number of users to skip
        query: Clerk free-text search (email, name, id)
    """
    users = await clerk.list_users(limit=limit, offset=offset, query=query or None)
    total = await clerk.get_user_count()
    states = await sync.activation_states([u.id for u in users])

    formatted = []
    for u in users:
        state = states.get(u.id, {})
        formatted.append(
            {
                "id": u.id,
                "firstName": u.first_name,
                "lastName": u.last_name,
                "fullName": u.full_name,
                "email": u.email,
                "imageUrl": u.image_url,
                "createdAt": u.created_at,
                "publicMetadata": u.public_metadata,
                "isActive": state.get("isActive", False),
                "inSanity": bool(state),
                "sanityId": state.get("sanityId"),
            }
        )

    return {"users": formatted, "totalCount": total, "hasNextPage": offset + limit < total}


@router.post("/sync-to-sanity")
async def sync_users_to_sanity(
    body: SyncUsersRequest,
    admin: ClerkUser = Depends(require_admin),
    sync: UserSyncService = Depends(get_user_sync_service),
):
    """Create or activate Sanity users; large batches may run on the Celery worker."""
    if not body.clerk_user_ids:
        raise InvalidRequestError("clerkUserIds array is required")

    if body.run_in_background:
        from ...tasks.users import sync_clerk_users_to_sanity

        task = sync_clerk_users_to_sanity.delay(body.clerk_user_ids, admin.email)
        logger.info(f"Queued Clerk sync of {len(body.clerk_user_ids)} users as task {task.id}")
        return {"success": True, "queued": True, "taskId": task.id}

    return await sync.sync_users(body.clerk_user_ids, admin.email)


@router.post("/{user_id}/activate")
async def activate_user(
    user_id: str,
    body: UserActivationRequest,
    admin: ClerkUser = Depends(require_admin),
    sync: UserSyncService = Depends(get_user_sync_service),
):
    if body.action not in ("activate", "deactivate"):
        raise InvalidRequestError("Invalid action. Use 'activate' or 'deactivate'")
    return await sync.set_active(user_id, body.action == "activate", admin.email)


@router.delete("/{user_id}/delete-sanity")
async def delete_sanity_user(
    user_id: str,
    admin: ClerkUser = Depends(require_admin),
    sync: UserSyncService = Depends(get_user_sync_service),
):
    return await sync.delete_sanity_user(user_id)
