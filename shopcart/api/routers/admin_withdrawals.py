"""
Admin withdrawal routes.
Review, approve, complete and reject customer payout requests.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_sanity_client, require_admin
from ..errors import ConflictError, InvalidRequestError, ResourceNotFoundError
from ..schemas.admin import WithdrawalActionRequest
from ...clients import ClerkUser, SanityClient
from ...models.withdrawals import (
    WithdrawalAction,
    WithdrawalTransitionError,
    apply_withdrawal_action,
    flatten_withdrawal_requests,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/withdrawals", tags=["Admin"])

USERS_WITH_WITHDRAWALS_QUERY = """*[_type == "user" && count(withdrawalRequests) > 0]{
  _id, clerkUserId, email, withdrawalRequests,
  "name": coalesce(name, firstName + " " + lastName, firstName, email)
}"""
WITHDRAWAL_OWNER_QUERY = (
    '*[_type == "user" && clerkUserId == $clerkUserId][0]{ _id, withdrawalRequests }'
)

ACTION_MESSAGES = {
    WithdrawalAction.APPROVE: "Withdrawal approved and processing",
    WithdrawalAction.COMPLETE: "Withdrawal marked as completed",
    WithdrawalAction.REJECT: "Withdrawal request rejected",
}


@router.get("")
async def list_withdrawals(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    users = await sanity.fetch(USERS_WITH_WITHDRAWALS_QUERY) or []
    requests = flatten_withdrawal_requests(users)
    return {"success": True, "requests": requests, "count": len(requests)}


async def _transition(
    sanity: SanityClient,
    admin: ClerkUser,
    clerk_user_id: str,
    request_id: str,
    action: WithdrawalAction,
    transaction_id: Optional[str] = None,
    reason: Optional[str] = None,
):
    owner = await sanity.fetch(WITHDRAWAL_OWNER_QUERY, {"clerkUserId": clerk_user_id})
    if not owner:
        raise ResourceNotFoundError("User", clerk_user_id)

    try:
        updated = apply_withdrawal_action(
            owner.get("withdrawalRequests") or [],
            request_id,
            action,
            processed_by=admin.email,
            processed_at=datetime.utcnow().isoformat() + "Z",
            transaction_id=transaction_id,
            reason=reason,
        )
    except WithdrawalTransitionError as e:
        raise ConflictError(str(e))
    if updated is None:
        raise ResourceNotFoundError("Withdrawal request", request_id)

    await sanity.patch(owner["_id"], set={"withdrawalRequests": updated})
    logger.info(f"Withdrawal {request_id} for {clerk_user_id}: {action.value} by {admin.email}")
    return {"success": True, "message": ACTION_MESSAGES[action]}


@router.post("/{clerk_user_id}/{request_id}/approve")
async def approve_withdrawal(
    clerk_user_id: str,
    request_id: str,
    body: WithdrawalActionRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    return await _transition(
        sanity, admin, clerk_user_id, request_id, WithdrawalAction.APPROVE,
        transaction_id=body.transaction_id,
    )


@router.post("/{clerk_user_id}/{request_id}/complete")
async def complete_withdrawal(
    clerk_user_id: str,
    request_id: str,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Close a processing request once the funds have been transferred."""
    return await _transition(sanity, admin, clerk_user_id, request_id, WithdrawalAction.COMPLETE)


@router.post("/{clerk_user_id}/{request_id}/reject")
async def reject_withdrawal(
    clerk_user_id: str,
    request_id: str,
    body: WithdrawalActionRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    reason = (body.reason or "").strip()
    if not reason:
        raise InvalidRequestError("Rejection reason is required")
    return await _transition(
        sanity, admin, clerk_user_id, request_id, WithdrawalAction.REJECT, reason=reason
    )
