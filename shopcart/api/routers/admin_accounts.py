"""
Admin account routes.
Premium and business account applications: review, approval, rejection and cancellation.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..dependencies import get_sanity_client, require_admin
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.admin import AccountApprovalRequest, AccountCancelRequest, AccountReviewRequest
from ...clients import ClerkUser, SanityClient, build_patch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

ACCOUNT_TYPES = ("premium", "business")

ACCOUNT_FIELDS = """{
  _id, firstName, lastName, email, premiumStatus, businessStatus,
  premiumAppliedAt, businessAppliedAt, premiumApprovedAt, businessApprovedAt,
  rejectionReason
}"""

ACCOUNT_QUERY = '*[_type == "user" && _id == $userId][0]' + ACCOUNT_FIELDS

PREMIUM_REQUESTS_QUERY = (
    f'*[_type == "user" && premiumStatus == "pending"]{ACCOUNT_FIELDS} | order(premiumAppliedAt desc)'
)
BUSINESS_REQUESTS_QUERY = (
    f'*[_type == "user" && businessStatus == "pending"]{ACCOUNT_FIELDS} | order(businessAppliedAt desc)'
)
APPROVED_PREMIUM_QUERY = (
    f'*[_type == "user" && premiumStatus == "active"]{ACCOUNT_FIELDS} | order(premiumApprovedAt desc)'
)
APPROVED_BUSINESS_QUERY = (
    f'*[_type == "user" && businessStatus == "active"]{ACCOUNT_FIELDS} | order(businessApprovedAt desc)'
)
ALL_ACCOUNT_USERS_QUERY = (
    f'*[_type == "user" && (premiumStatus != "none" || businessStatus != "none")]{ACCOUNT_FIELDS}'
)

PENDING_PREMIUM_COUNT_QUERY = 'count(*[_type == "user" && premiumStatus == "pending"])'
PENDING_BUSINESS_COUNT_QUERY = 'count(*[_type == "user" && businessStatus == "pending"])'
RECENT_REQUESTS_QUERY = """count(*[_type == "user" && (
  (premiumStatus == "pending" && premiumAppliedAt > $since) ||
  (businessStatus == "pending" && businessAppliedAt > $since)
)])"""

LISTED_ACCOUNT_FIELDS = """{
  _id, email, firstName, lastName, isActive, premiumStatus, businessStatus, isBusiness,
  premiumAppliedAt, premiumApprovedBy, premiumApprovedAt, businessAppliedAt,
  businessApprovedBy, businessApprovedAt, rejectionReason, membershipType, createdAt
}"""
PREMIUM_ACCOUNTS_QUERY = (
    '*[_type == "user" && premiumStatus in ["pending", "active", "rejected"]]'
    f"{LISTED_ACCOUNT_FIELDS} | order(premiumAppliedAt desc)"
)
BUSINESS_ACCOUNTS_QUERY = (
    '*[_type == "user" && businessStatus in ["pending", "active", "rejected"]]'
    f"{LISTED_ACCOUNT_FIELDS} | order(businessAppliedAt desc)"
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

PREMIUM_WELCOME_BONUS = 100


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _check_type(account_type: str) -> None:
    if account_type not in ACCOUNT_TYPES:
        raise InvalidRequestError("Invalid account type")


def _display_name(account: Dict[str, Any]) -> str:
    return f"{account.get('firstName') or ''} {account.get('lastName') or ''}".strip()


async def _pending_account(sanity: SanityClient, user_id: str, account_type: str) -> Dict[str, Any]:
    account = await sanity.fetch(ACCOUNT_QUERY, {"userId": user_id})
    if not account:
        raise ResourceNotFoundError("User", user_id)
    if account.get(f"{account_type}Status") != "pending":
        raise InvalidRequestError(f"{account_type} account is not in pending status")
    return account


@router.post("/approve-account")
async def approve_account(
    body: AccountReviewRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Approve a pending premium or business application.

    A business account can only be approved on top of an active premium one.
    """
    if not body.user_id or not body.type:
        raise InvalidRequestError("Missing required fields")
    _check_type(body.type)

    account = await _pending_account(sanity, body.user_id, body.type)
    if body.type == "business" and account.get("premiumStatus") != "active":
        raise InvalidRequestError(
            "User must have an active premium account before applying for business account"
        )

    await sanity.patch(
        body.user_id,
        set={f"{body.type}Status": "active", f"{body.type}ApprovedAt": _now()},
        unset=["rejectionReason"] if account.get("rejectionReason") else None,
    )

    logger.info(f"{body.type} account approved for {body.user_id} by {admin.email}")
    return {
        "success": True,
        "message": (
            f"{body.type.capitalize()} account approved successfully for {_display_name(account)}!"
        ),
    }


@router.post("/reject-account")
async def reject_account(
    body: AccountReviewRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    if not body.user_id or not body.type or not (body.reason or "").strip():
        raise InvalidRequestError("Missing required fields")
    _check_type(body.type)

    account = await _pending_account(sanity, body.user_id, body.type)
    await sanity.patch(
        body.user_id,
        set={
            f"{body.type}Status": "rejected",
            f"{body.type}RejectedAt": _now(),
            "rejectionReason": body.reason.strip(),
        },
    )

    logger.info(f"{body.type} account rejected for {body.user_id} by {admin.email}")
    return {
        "success": True,
        "message": f"{body.type.capitalize()} account rejected for {_display_name(account)}",
    }


@router.post("/cancel-account")
async def cancel_account(
    body: AccountCancelRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    if not body.account_id or not body.type or not body.reason:
        raise InvalidRequestError("Account ID, type, and reason are required")
    _check_type(body.type)

    account = await sanity.fetch(ACCOUNT_QUERY, {"userId": body.account_id})
    if not account:
        raise ResourceNotFoundError("User", body.account_id)
    if account.get(f"{body.type}Status") != "active":
        raise InvalidRequestError(f"{body.type} account is not active")

    result = await sanity.transaction(
        [
            build_patch(
                body.account_id,
                set={
                    f"{body.type}Status": "cancelled",
                    f"{body.type}CancelledAt": _now(),
                    f"{body.type}CancellationReason": body.reason,
                },
            )
        ]
    )

    logger.info(f"{body.type} account {body.account_id} cancelled by {admin.email}")
    return {"success": True, "message": f"{body.type} account cancelled successfully", "result": result}


@router.get("/account-requests")
async def list_account_requests(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """Pending and approved applications; never cached by the browser."""
    premium, business, approved_premium, approved_business, all_users = await asyncio.gather(
        sanity.fetch(PREMIUM_REQUESTS_QUERY),
        sanity.fetch(BUSINESS_REQUESTS_QUERY),
        sanity.fetch(APPROVED_PREMIUM_QUERY),
        sanity.fetch(APPROVED_BUSINESS_QUERY),
        sanity.fetch(ALL_ACCOUNT_USERS_QUERY),
    )
    return JSONResponse(
        content={
            "success": True,
            "premiumRequests": premium or [],
            "businessRequests": business or [],
            "approvedPremiumAccounts": approved_premium or [],
            "approvedBusinessAccounts": approved_business or [],
            "allUsers": all_users or [],
        },
        headers=NO_CACHE_HEADERS,
    )


@router.get("/account-requests-summary")
async def account_requests_summary(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    since = (datetime.utcnow() - timedelta(days=7)).isoformat() + "Z"
    pending_premium, pending_business, recent = await asyncio.gather(
        sanity.fetch(PENDING_PREMIUM_COUNT_QUERY),
        sanity.fetch(PENDING_BUSINESS_COUNT_QUERY),
        sanity.fetch(RECENT_REQUESTS_QUERY, {"since": since}),
    )
    pending_premium = pending_premium or 0
    pending_business = pending_business or 0
    return {
        "success": True,
        "pendingPremiumCount": pending_premium,
        "pendingBusinessCount": pending_business,
        "totalPendingRequests": pending_premium + pending_business,
        "recentRequests": recent or 0,
    }


@router.get("/premium-accounts")
async def list_premium_accounts(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    return {"success": True, "accounts": await sanity.fetch(PREMIUM_ACCOUNTS_QUERY) or []}


@router.get("/business-accounts")
async def list_business_accounts(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    return {"success": True, "accounts": await sanity.fetch(BUSINESS_ACCOUNTS_QUERY) or []}


@router.post("/premium-accounts/approve")
async def decide_premium_account(
    body: AccountApprovalRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Approve or reject a premium membership.

    The first approval activates the account and credits the welcome bonus on
    top of any loyalty points already held. Approving an account that is
    already active refreshes the approval stamp only.
    """
    if not body.account_id or body.approve is None:
        raise InvalidRequestError("Missing required fields")

    now = _now()
    approved_by = body.admin_email or admin.email
    if body.approve:
        current = await sanity.fetch(ACCOUNT_QUERY, {"userId": body.account_id})
        if not current:
            raise ResourceNotFoundError("Account", body.account_id)

        bonus: Dict[str, Any] = {}
        if current.get("premiumStatus") != "active":
            bonus = {
                "set_if_missing": {"loyaltyPoints": 0},
                "inc": {"loyaltyPoints": PREMIUM_WELCOME_BONUS},
            }
        account = await sanity.patch(
            body.account_id,
            set={
                "isActive": True,
                "premiumStatus": "active",
                "membershipType": "premium",
                "premiumApprovedBy": approved_by,
                "premiumApprovedAt": now,
                "updatedAt": now,
            },
            **bonus,
        )
        message = "Premium account approved successfully"
    else:
        account = await sanity.patch(
            body.account_id,
            set={
                "isActive": False,
                "premiumStatus": "rejected",
                "premiumApprovedBy": approved_by,
                "premiumApprovedAt": now,
                "rejectionReason": body.reason or "No reason provided",
                "updatedAt": now,
            },
        )
        message = "Premium account rejected"

    logger.info(f"{message}: {body.account_id} by {approved_by}")
    return {"success": True, "message": message, "account": account}


@router.post("/business-accounts/approve")
async def decide_business_account(
    body: AccountApprovalRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    if not body.account_id or body.approve is None:
        raise InvalidRequestError("Missing required fields")

    now = _now()
    approved_by = body.admin_email or admin.email
    fields: Dict[str, Any] = {
        "isBusiness": body.approve,
        "businessStatus": "active" if body.approve else "rejected",
        "businessApprovedBy": approved_by,
        "businessApprovedAt": now,
        "updatedAt": now,
    }
    if body.approve:
        fields["membershipType"] = "business"
    else:
        fields["rejectionReason"] = body.reason or "No reason provided"

    account = await sanity.patch(body.account_id, set=fields)
    message = "Business account approved successfully" if body.approve else "Business account rejected"

    logger.info(f"{message}: {body.account_id} by {approved_by}")
    return {"success": True, "message": message, "account": account}
