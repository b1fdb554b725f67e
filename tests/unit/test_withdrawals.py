"""
Tests for the withdrawal request lifecycle.
"""

import pytest

from shopcart.models.withdrawals import (
    WithdrawalAction,
    WithdrawalTransitionError,
    apply_withdrawal_action,
    flatten_withdrawal_requests,
)

NOW = "2026-03-15T12:00:00Z"

REQUESTS = [
    {"id": "w1", "amount": 50, "status": "pending"},
    {"id": "w2", "amount": 20, "status": "processing"},
]


def test_approve_moves_to_processing():
    updated = apply_withdrawal_action(
        REQUESTS, "w1", WithdrawalAction.APPROVE, "admin@shop.test", NOW, transaction_id="tx-9"
    )

    assert updated[0] == {
        "id": "w1",
        "amount": 50,
        "status": "processing",
        "processedAt": NOW,
        "processedBy": "admin@shop.test",
        "transactionId": "tx-9",
    }
    assert updated[1] == REQUESTS[1]
    assert REQUESTS[0]["status"] == "pending"


def test_complete_and_reject():
    completed = apply_withdrawal_action(REQUESTS, "w2", WithdrawalAction.COMPLETE, "a@shop.test", NOW)
    rejected = apply_withdrawal_action(
        REQUESTS, "w1", WithdrawalAction.REJECT, "a@shop.test", NOW, reason="Bad IBAN"
    )

    assert completed[1]["status"] == "completed"
    assert "transactionId" not in completed[1]
    assert rejected[0]["status"] == "rejected"
    assert rejected[0]["rejectionReason"] == "Bad IBAN"


@pytest.mark.parametrize(
    "request_id,action,message",
    [
        ("w2", WithdrawalAction.APPROVE, "Only pending requests can be approved"),
        ("w1", WithdrawalAction.COMPLETE, "Only processing requests can be completed"),
        ("w2", WithdrawalAction.REJECT, "Only pending requests can be rejected"),
    ],
)
def test_wrong_status_is_refused(request_id, action, message):
    with pytest.raises(WithdrawalTransitionError, match=message):
        apply_withdrawal_action(REQUESTS, request_id, action, "a@shop.test", NOW)


def test_unknown_request():
    assert apply_withdrawal_action(REQUESTS, "w9", WithdrawalAction.APPROVE, "a@shop.test", NOW) is None


def test_flatten_tags_owner_and_sorts_newest_first():
    users = [
        {
            "clerkUserId": "user_1",
            "name": "Jane Doe",
            "email": "jane@shop.test",
            "withdrawalRequests": [{"id": "w1", "requestedAt": "2026-03-01T00:00:00Z"}],
        },
        {
            "clerkUserId": "user_2",
            "name": "Sam",
            "email": "sam@shop.test",
            "withdrawalRequests": [{"id": "w2", "requestedAt": "2026-03-10T00:00:00Z"}],
        },
        {"clerkUserId": "user_3", "withdrawalRequests": None},
    ]

    flattened = flatten_withdrawal_requests(users)

    assert [r["id"] for r in flattened] == ["w2", "w1"]
    assert flattened[1]["userId"] == "user_1"
    assert flattened[1]["userName"] == "Jane Doe"
    assert flattened[1]["userEmail"] == "jane@shop.test"
