"""
Withdrawal Requests
Lifecycle of the payout requests stored on a user's ``withdrawalRequests`` array.

    pending --approve--> processing --complete--> completed
    pending --reject---> rejected
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class WithdrawalAction(str, Enum):
    APPROVE = "approve"
    COMPLETE = "complete"
    REJECT = "reject"


# action -> (required current status, resulting status)
WITHDRAWAL_TRANSITIONS = {
    WithdrawalAction.APPROVE: (WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING),
    WithdrawalAction.COMPLETE: (WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETED),
    WithdrawalAction.REJECT: (WithdrawalStatus.PENDING, WithdrawalStatus.REJECTED),
}

_REQUIRED_LABEL = {
    WithdrawalAction.APPROVE: "Only pending requests can be approved",
    WithdrawalAction.COMPLETE: "Only processing requests can be completed",
    WithdrawalAction.REJECT: "Only pending requests can be rejected",
}


class WithdrawalTransitionError(ValueError):
    pass


def apply_withdrawal_action(
    requests: List[Mapping[str, Any]],
    request_id: str,
    action: WithdrawalAction,
    processed_by: Optional[str],
    processed_at: str,
    transaction_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> Optional[List[Dict[str, Any]]]:
    """
    Return a copy of ``requests`` with one request moved to its next status.

    Returns None when no request has ``request_id``.

    Raises:
        WithdrawalTransitionError: The request is not in the status the action needs
    """
    required, result = WITHDRAWAL_TRANSITIONS[action]
    updated = []
    found = False
    for request in requests:
        request = dict(request)
        if request.get("id") == request_id:
            found = True
            if request.get("status") != required.value:
                raise WithdrawalTransitionError(_REQUIRED_LABEL[action])
            request.update(
                {"status": result.value, "processedAt": processed_at, "processedBy": processed_by}
            )
            if action == WithdrawalAction.APPROVE:
                request["transactionId"] = transaction_id or ""
            if action == WithdrawalAction.REJECT:
                request["rejectionReason"] = reason
        updated.append(request)
    return updated if found else None


def flatten_withdrawal_requests(users: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Every user's requests in one list, tagged with the owner, newest first."""
    flattened = []
    for user in users:
        for request in user.get("withdrawalRequests") or []:
            flattened.append(
                {
                    **request,
                    "userId": user.get("clerkUserId"),
                    "userName": user.get("name"),
                    "userEmail": user.get("email"),
                }
            )
    return sorted(flattened, key=lambda r: r.get("requestedAt") or "", reverse=True)
