"""
Tests for employee roles and the fulfilment workflow.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shopcart.api.errors import ConflictError, InvalidRequestError, PermissionDeniedError
from shopcart.api.services.employee_service import EmployeeOrderService, employee_name
from shopcart.api.services.notification_service import NotificationService
from shopcart.models.employee import (
    ROLE_PERMISSIONS,
    EmployeePermissions,
    EmployeeRole,
    get_permissions,
    has_permission,
)

PACKER = {"_id": "emp-packer", "email": "pat@shop.test", "employeeRole": "packer"}
CALLCENTER = {"_id": "emp-cc", "email": "cal@shop.test", "employeeRole": "callcenter"}
DELIVERYMAN = {
    "_id": "emp-del",
    "email": "dan@shop.test",
    "firstName": "Dan",
    "lastName": "Driver",
    "employeeRole": "deliveryman",
}
ACCOUNTS = {"_id": "emp-acc", "email": "acc@shop.test", "employeeRole": "accounts"}


def make_service(sanity, employee, order=None, extra=None):
    """Service whose Sanity double answers employee, order and lookup queries."""
    lookups = extra or {}

    def fetch(query, params=None):
        params = params or {}
        if "clerkUserId == $clerkUserId" in query:
            return employee
        if "_id == $employeeId" in query:
            return lookups.get(params["employeeId"])
        if "_id == $orderId" in query:
            return order
        return []

    sanity.fetch.side_effect = fetch
    notifications = MagicMock(spec=NotificationService)
    notifications.notify_order_status_safely = AsyncMock()
    return EmployeeOrderService(sanity, notifications), notifications


def order_patch(sanity, order_id):
    for call in sanity.patch.call_args_list:
        if call.args[0] == order_id:
            return call.kwargs["set"]
    raise AssertionError(f"order {order_id} was not patched")


def test_role_permissions():
    assert has_permission("packer", "canPackOrders")
    assert not has_permission("packer", "canConfirmOrders")
    assert has_permission("incharge", "canManageEmployees")
    assert not has_permission("intern", "canViewOrders")
    assert get_permissions("intern") is None


def test_employee_name_falls_back_to_email():
    assert employee_name(DELIVERYMAN) == "Dan Driver"
    assert employee_name({"email": "x@shop.test"}) == "x@shop.test"
    assert employee_name({}) == "Employee"


@pytest.mark.asyncio
async def test_non_employee_is_rejected(sanity):
    service, _ = make_service(sanity, employee=None)

    with pytest.raises(PermissionDeniedError):
        await service.get_employee("user_1")


@pytest.mark.asyncio
async def test_inactive_employee_is_rejected(sanity):
    service, _ = make_service(sanity, {**PACKER, "employeeStatus": "suspended"})

    with pytest.raises(PermissionDeniedError):
        await service.get_employee("user_1")


@pytest.mark.asyncio
async def test_wrong_role_cannot_pack(sanity):
    order = {"_id": "o1", "orderConfirmedBy": "cal@shop.test"}
    service, _ = make_service(sanity, CALLCENTER, order)

    with pytest.raises(PermissionDeniedError):
        await service.mark_packed("user_1", "o1")


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [r.value for r in EmployeeRole])
@pytest.mark.parametrize(
    "permission",
    [
        "canConfirmOrders",
        "canPackOrders",
        "canAssignDelivery",
        "canDeliverOrders",
        "canCollectCash",
        "canReceivePayments",
    ],
)
async def test_action_gate_follows_permission_matrix(sanity, role, permission):
    service, _ = make_service(sanity, {"_id": "emp-1", "employeeRole": role})

    if has_permission(role, permission):
        assert (await service.get_employee("user_1", permission))["_id"] == "emp-1"
    else:
        with pytest.raises(PermissionDeniedError):
            await service.get_employee("user_1", permission)


@pytest.mark.asyncio
async def test_revoked_permission_blocks_action(sanity, monkeypatch):
    order = {"_id": "o1", "orderConfirmedBy": "cal@shop.test"}
    service, _ = make_service(sanity, PACKER, order)
    monkeypatch.setitem(ROLE_PERMISSIONS, EmployeeRole.PACKER, EmployeePermissions())

    with pytest.raises(PermissionDeniedError) as exc_info:
        await service.mark_packed("user_1", "o1")

    assert exc_info.value.message == "Role 'packer' cannot perform this action"
    sanity.patch.assert_not_called()


@pytest.mark.asyncio
async def test_confirm_address_records_history_and_notifies(sanity):
    order = {"_id": "o1", "orderNumber": "ORDER-1", "clerkUserId": "cust_1", "status": "pending"}
    service, notifications = make_service(sanity, CALLCENTER, order)

    result = await service.confirm_address("user_1", "o1", notes="called customer")

    assert result["success"] is True
    changes = order_patch(sanity, "o1")
    assert changes["status"] == "address_confirmed"
    assert changes["addressConfirmedBy"] == "cal@shop.test"
    assert changes["statusHistory"][-1]["status"] == "Address Confirmed"
    assert changes["statusHistory"][-1]["notes"] == "called customer"
    notifications.notify_order_status_safely.assert_awaited_once_with(
        "cust_1", "ORDER-1", "o1", "address_confirmed"
    )


@pytest.mark.asyncio
async def test_confirm_address_requires_pending(sanity):
    service, _ = make_service(sanity, CALLCENTER, {"_id": "o1", "status": "packed"})

    with pytest.raises(ConflictError):
        await service.confirm_address("user_1", "o1")


@pytest.mark.asyncio
async def test_packing_requires_confirmation(sanity):
    service, _ = make_service(sanity, PACKER, {"_id": "o1", "status": "address_confirmed"})

    with pytest.raises(ConflictError) as exc_info:
        await service.mark_packed("user_1", "o1")

    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_pack_updates_performance(sanity):
    order = {"_id": "o1", "orderConfirmedBy": "cal@shop.test", "status": "order_confirmed"}
    employee = {**PACKER, "employeePerformance": {"ordersPacked": 4}}
    service, _ = make_service(sanity, employee, order)

    await service.mark_packed("user_1", "o1", notes="fragile")

    performance = order_patch(sanity, "emp-packer")["employeePerformance"]
    assert performance["ordersPacked"] == 5
    assert performance["ordersProcessed"] == 1
    assert order_patch(sanity, "o1")["packingNotes"] == "fragile"


@pytest.mark.asyncio
async def test_assign_requires_a_deliveryman(sanity):
    warehouse = {"_id": "emp-wh", "email": "wh@shop.test", "employeeRole": "warehouse"}
    order = {"_id": "o1", "packedBy": "pat@shop.test"}
    service, _ = make_service(sanity, warehouse, order, extra={"emp-del": DELIVERYMAN})

    with pytest.raises(InvalidRequestError):
        await service.assign_deliveryman("user_1", "o1", None)

    result = await service.assign_deliveryman("user_1", "o1", "emp-del")
    assert result["message"] == "Order assigned to Dan Driver"
    assert order_patch(sanity, "o1")["status"] == "ready_for_delivery"


@pytest.mark.asyncio
async def test_deliveryman_only_handles_own_orders(sanity):
    order = {"_id": "o1", "status": "ready_for_delivery", "assignedDeliverymanId": "someone-else"}
    service, _ = make_service(sanity, DELIVERYMAN, order)

    with pytest.raises(PermissionDeniedError):
        await service.start_delivery("user_1", "o1")


@pytest.mark.asyncio
async def test_start_delivery_counts_attempts(sanity):
    order = {"_id": "o1", "status": "rescheduled", "assignedDeliverymanId": "emp-del", "deliveryAttempts": 1}
    service, _ = make_service(sanity, DELIVERYMAN, order)

    await service.start_delivery("user_1", "o1")

    changes = order_patch(sanity, "o1")
    assert changes["status"] == "out_for_delivery"
    assert changes["deliveryAttempts"] == 2


@pytest.mark.asyncio
async def test_cash_order_needs_collection_before_delivery(sanity):
    order = {
        "_id": "o1",
        "status": "out_for_delivery",
        "assignedDeliverymanId": "emp-del",
        "paymentMethod": "cash_on_delivery",
        "paymentStatus": "pending",
    }
    service, _ = make_service(sanity, DELIVERYMAN, order)

    with pytest.raises(ConflictError):
        await service.mark_delivered("user_1", "o1")


@pytest.mark.asyncio
async def test_collect_cash_marks_paid(sanity):
    service, _ = make_service(sanity, DELIVERYMAN, {"_id": "o1"})

    result = await service.collect_cash("user_1", "o1", 42.5)

    assert result["message"] == "Cash collected: $42.5"
    changes = order_patch(sanity, "o1")
    assert changes["cashCollected"] is True
    assert changes["paymentStatus"] == "paid"


@pytest.mark.asyncio
async def test_receive_payment_requires_submission(sanity):
    service, _ = make_service(sanity, ACCOUNTS, {"_id": "o1", "cashCollected": True})

    with pytest.raises(ConflictError):
        await service.receive_payment("user_1", "o1")


@pytest.mark.asyncio
async def test_receive_payment_completes_order(sanity):
    order = {
        "_id": "o1",
        "cashCollected": True,
        "cashSubmittedToAccounts": True,
        "cashSubmissionStatus": "pending",
    }
    service, _ = make_service(sanity, ACCOUNTS, order)

    await service.receive_payment("user_1", "o1")

    changes = order_patch(sanity, "o1")
    assert changes["cashSubmissionStatus"] == "confirmed"
    assert changes["status"] == "completed"


@pytest.mark.asyncio
async def test_packer_queue_filters_by_status(sanity):
    service, _ = make_service(sanity, PACKER)

    await service.orders_for_employee("user_1")

    query, params = sanity.fetch.call_args.args
    assert "status in $statuses" in query
    assert params == {"statuses": ["order_confirmed", "packed"]}


@pytest.mark.asyncio
async def test_deliveryman_queue_is_own_assignments(sanity):
    service, _ = make_service(sanity, DELIVERYMAN)

    await service.orders_for_employee("user_1")

    query, params = sanity.fetch.call_args.args
    assert "assignedDeliverymanId == $employeeId" in query
    assert params["employeeId"] == "emp-del"


SUBMITTED_CASH = {
    "_id": "o1",
    "cashCollected": True,
    "cashSubmittedToAccounts": True,
    "cashSubmissionStatus": "pending",
    "assignedAccountsEmployeeId": "emp-acc",
}


@pytest.mark.asyncio
async def test_reject_cash_requires_reason(sanity):
    service, _ = make_service(sanity, ACCOUNTS, dict(SUBMITTED_CASH))

    with pytest.raises(InvalidRequestError):
        await service.reject_cash_submission("user_1", "o1", "   ")
    sanity.fetch.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "order,message",
    [
        ({"_id": "o1", "cashCollected": True}, "No cash submission found for this order"),
        (
            {**SUBMITTED_CASH, "cashSubmissionStatus": "confirmed"},
            "Cannot reject a confirmed cash submission",
        ),
    ],
)
async def test_reject_cash_conflicts(sanity, order, message):
    service, _ = make_service(sanity, ACCOUNTS, order)

    with pytest.raises(ConflictError) as exc:
        await service.reject_cash_submission("user_1", "o1", "Short by 20")
    assert exc.value.message == message
    sanity.patch.assert_not_called()


@pytest.mark.asyncio
async def test_reject_cash_returns_submission_to_deliveryman(sanity):
    service, _ = make_service(sanity, ACCOUNTS, dict(SUBMITTED_CASH))

    result = await service.reject_cash_submission("user_1", "o1", " Short by 20 ")

    assert result["message"] == "Cash submission rejected. Deliveryman can resubmit."
    changes = order_patch(sanity, "o1")
    assert changes["cashSubmissionStatus"] == "rejected"
    assert changes["cashSubmissionRejectionReason"] == "Short by 20"
    assert changes["cashSubmittedToAccounts"] is False
    assert changes["assignedAccountsEmployeeId"] is None
    assert changes["statusHistory"][-1]["status"] == "Cash Submission Rejected"
    assert changes["statusHistory"][-1]["notes"] == "Rejected by acc@shop.test: Short by 20"


@pytest.mark.asyncio
async def test_packer_cannot_read_accounts_queue(sanity):
    service, _ = make_service(sanity, PACKER)

    with pytest.raises(PermissionDeniedError):
        await service.orders_for_accounts("user_1")


@pytest.mark.asyncio
async def test_accounts_payment_stats(sanity):
    service, _ = make_service(sanity, ACCOUNTS)
    raw = {
        "totalCodRevenue": [10.25, 20],
        "codPaidRevenue": [20],
        "codPendingRevenue": None,
        "cardRevenue": [99.99],
        "totalCodOrders": 2,
        "codPaidOrders": 1,
    }
    employee_lookup = sanity.fetch.side_effect
    sanity.fetch.side_effect = lambda query, params=None: (
        raw if '"totalCodRevenue"' in query else employee_lookup(query, params)
    )

    stats = await service.accounts_payment_stats("user_1")

    assert stats == {
        "totalCodRevenue": 30.25,
        "codPaidRevenue": 20,
        "codPendingRevenue": 0,
        "cardRevenue": 99.99,
        "totalCodOrders": 2,
        "codPaidOrders": 1,
        "codPendingOrders": 0,
        "cardOrders": 0,
    }
