"""
Tests for employee order routes.
"""

import pytest

CALLCENTER = {
    "_id": "emp-1",
    "email": "calls@shop.test",
    "isEmployee": True,
    "employeeRole": "callcenter",
    "employeeStatus": "active",
}

PENDING_ORDER = {
    "_id": "order-1",
    "orderNumber": "ORDER-1",
    "clerkUserId": "user_buyer",
    "status": "pending",
}


@pytest.fixture
def staffed(sanity, answer):
    """Answer employee and order lookups with the given documents."""

    def _staffed(employee, order=None, queue=None):
        sanity.fetch.side_effect = answer(
            {
                "isEmployee == true": employee,
                "_id == $orderId": order,
                "status in $statuses": queue,
            }
        )

    return _staffed


def test_non_employee_is_forbidden(client, sanity):
    response = client.get("/api/employee/orders")

    assert response.status_code == 403
    assert response.json() == {"error": "Employee access required"}


def test_queue_for_role(client, sanity, staffed):
    staffed(CALLCENTER, queue=[{"_id": "order-1"}])

    body = client.get("/api/employee/orders").json()

    assert body == {"success": True, "orders": [{"_id": "order-1"}], "count": 1}
    query, params = sanity.fetch.call_args.args
    assert params == {"statuses": ["pending", "address_confirmed", "order_confirmed"]}


def test_confirm_address(client, sanity, staffed, notifications):
    staffed(CALLCENTER, order=dict(PENDING_ORDER))

    response = client.post("/api/employee/orders/order-1/confirm-address", json={"notes": "Called"})

    assert response.json() == {"success": True, "message": "Address confirmed successfully"}
    changes = sanity.patch.call_args.kwargs["set"]
    assert changes["status"] == "address_confirmed"
    assert changes["addressConfirmedBy"] == "calls@shop.test"
    assert changes["statusHistory"][-1]["notes"] == "Called"
    notifications.notify_order_status_safely.assert_awaited_once_with(
        "user_buyer", "ORDER-1", "order-1", "address_confirmed"
    )


def test_wrong_role_is_forbidden(client, sanity, staffed):
    staffed(CALLCENTER, order={**PENDING_ORDER, "orderConfirmedBy": "calls@shop.test"})

    response = client.post("/api/employee/orders/order-1/pack", json={})

    assert response.status_code == 403
    assert response.json()["error"] == "Role 'callcenter' cannot perform this action"
    sanity.patch.assert_not_called()


def test_out_of_order_step_conflicts(client, sanity, staffed):
    staffed(CALLCENTER, order=dict(PENDING_ORDER))

    response = client.post("/api/employee/orders/order-1/confirm", json={})

    assert response.status_code == 409
    assert response.json()["error"] == "Please confirm the address first"


def test_unknown_order_is_404(client, staffed):
    staffed(CALLCENTER)

    response = client.post("/api/employee/orders/order-x/confirm-address", json={})

    assert response.status_code == 404
    assert response.json()["error"] == "Order not found"


def test_assign_delivery_requires_deliveryman(client, sanity):
    response = client.post("/api/employee/orders/order-1/assign-delivery", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Deliveryman ID is required"
    sanity.fetch.assert_not_called()


def test_collect_cash_rejects_non_positive_amount(client):
    response = client.post("/api/employee/orders/order-1/collect-cash", json={"amount": 0})

    assert response.status_code == 422


def test_reschedule_requires_date_and_reason(client):
    response = client.post("/api/employee/orders/order-1/reschedule", json={"newDate": "2026-11-01"})

    assert response.json()["error"] == "New date and reason are required"


def test_submit_cash_requires_accounts_employee(client):
    response = client.post("/api/employee/orders/order-1/submit-cash", json={"notes": "All there"})

    assert response.json()["error"] == "Accounts employee ID is required"


ACCOUNTS = {
    "_id": "emp-2",
    "email": "books@shop.test",
    "isEmployee": True,
    "employeeRole": "accounts",
    "employeeStatus": "active",
}


def test_accounts_queue(client, sanity, answer):
    sanity.fetch.side_effect = answer(
        {"isEmployee == true": ACCOUNTS, "cashSubmittedToAccounts == true": [{"_id": "order-1"}]}
    )

    body = client.get("/api/employee/orders/accounts").json()

    assert body == {"success": True, "orders": [{"_id": "order-1"}], "count": 1}


def test_accounts_queue_needs_payment_permission(client, staffed):
    staffed(CALLCENTER)

    response = client.get("/api/employee/orders/accounts")

    assert response.status_code == 403


def test_reject_cash_requires_reason(client, sanity):
    response = client.post("/api/employee/orders/order-1/reject-cash", json={"reason": ""})

    assert response.status_code == 400
    assert response.json()["error"] == "Please provide a reason for rejection"
    sanity.fetch.assert_not_called()
