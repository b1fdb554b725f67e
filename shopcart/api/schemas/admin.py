"""
Admin request schemas.
"""

from typing import List, Optional

from pydantic import Field

from .common import CamelModel


class AccountReviewRequest(CamelModel):
    """Approve or reject a pending premium/business application."""

    user_id: Optional[str] = None
    type: Optional[str] = Field(None, description="premium or business")
    reason: Optional[str] = None


class AccountCancelRequest(CamelModel):
    account_id: Optional[str] = None
    type: Optional[str] = None
    reason: Optional[str] = None


class AccountApprovalRequest(CamelModel):
    account_id: Optional[str] = None
    approve: Optional[bool] = None
    admin_email: Optional[str] = None
    reason: Optional[str] = None


class SyncUsersRequest(CamelModel):
    clerk_user_ids: List[str] = Field(default_factory=list)
    run_in_background: bool = False


class ReviewModerationRequest(CamelModel):
    review_id: Optional[str] = None
    action: Optional[str] = None
    admin_notes: Optional[str] = None


class SendNotificationRequest(CamelModel):
    title: Optional[str] = None
    message: Optional[str] = None
    type: str = "general"
    priority: str = "medium"
    action_url: Optional[str] = None
    recipients: List[str] = Field(default_factory=list, description="Clerk user ids")
    sent_by: Optional[str] = None
    run_in_background: bool = False


class UserActivationRequest(CamelModel):
    action: Optional[str] = Field(None, description="activate or deactivate")


class WithdrawalActionRequest(CamelModel):
    transaction_id: Optional[str] = None
    reason: Optional[str] = None
