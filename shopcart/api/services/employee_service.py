"""
Employee Order Workflow
Fulfilment steps performed by staff, from address confirmation to cash reconciliation.

Each step checks that the acting employee's role grants the needed permission,
patches the order, appends a status history entry and, for customer-visible
steps, sends an order notification.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import ConflictError, InvalidRequestError, PermissionDeniedError, ResourceNotFoundError
from .notification_service import NotificationService
from ...clients import SanityClient
from ...models.employee import ROLE_ORDER_QUEUES, EmployeeRole, EmployeeStatus, has_permission
from ...models.order_status import FulfillmentStatus, OrderStatus, PaymentMethod, PaymentStatus
from ...models.stats import ACCOUNTS_PAYMENT_STATS_QUERY, build_accounts_payment_stats

logger = logging.getLogger(__name__)

EMPLOYEE_QUERY = '*[_type == "user" && clerkUserId == $clerkUserId && isEmployee == true][0]'
EMPLOYEE_BY_ID_QUERY = '*[_type == "user" && _id == $employeeId && isEmployee == true][0]'
ORDER_QUERY = '*[_type == "order" && _id == $orderId][0]'

EMPLOYEE_ORDER_PROJECTION = """{
  _id, orderNumber, customerName, email, phone, clerkUserId, totalPrice, currency,
  status, paymentStatus, paymentMethod, orderDate, "shippingAddress": address,
  products[]{ _key, quantity, product->{ _id, name, price, "image": images[0].asset->url } },
  addressConfirmedBy, orderConfirmedBy, packedBy, packingNotes, dispatchedBy,
  assignedDeliverymanId, assignedDeliverymanName, deliveredBy, deliveryAttempts,
  rescheduledDate, rescheduledReason, cashCollected, cashCollectedAmount,
  cashSubmittedToAccounts, cashSubmissionStatus, paymentReceivedBy, statusHistory
}"""

ACCOUNTS_ORDERS_QUERY = """*[_type == "order" && (
  cashSubmittedToAccounts == true ||
  defined(paymentReceivedBy) ||
  (paymentMethod in ["card", "stripe"] && defined(stripeCheckoutSessionId) && stripeCheckoutSessionId != "")
)] | order(coalesce(cashSubmittedAt, paymentCompletedAt, orderDate) desc) {
  _id, orderNumber, customerName, email, phone, clerkUserId, totalPrice, currency,
  status, paymentStatus, paymentMethod, orderDate, "shippingAddress": address, deliveredAt,
  cashCollected, cashCollectedAmount, cashCollectedAt, cashSubmittedToAccounts, cashSubmittedBy,
  cashSubmittedAt, cashSubmissionNotes, cashSubmissionStatus, assignedAccountsEmployeeName,
  paymentReceivedBy, paymentReceivedAt, stripeCheckoutSessionId, paymentCompletedAt, statusHistory
}"""


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def employee_name(employee: Dict[str, Any]) -> str:
    name = f"{employee.get('firstName') or ''} {employee.get('lastName') or ''}".strip()
    return name or employee.get("email") or "Employee"


class EmployeeOrderService:
    """Role-gated order actions for store employees."""

    def __init__(self, sanity: SanityClient, notifications: NotificationService):
        self.sanity = sanity
        self.notifications = notifications

    async def get_employee(self, clerk_user_id: str, permission: Optional[str] = None) -> Dict[str, Any]:
        """
        Load the acting employee.

        Args:
            clerk_user_id: Clerk id of the signed-in user
            permission: Permission the action needs (e.g. ``canPackOrders``),
                looked up in the role permission matrix

        Raises:
            PermissionDeniedError: If the user is not an active employee whose
                role grants the permission
        """
        employee = await self.sanity.fetch(EMPLOYEE_QUERY, {"clerkUserId": clerk_user_id})
        if not employee:
            raise PermissionDeniedError("Employee access required")
        if employee.get("employeeStatus", EmployeeStatus.ACTIVE.value) != EmployeeStatus.ACTIVE.value:
            raise PermissionDeniedError("Employee account is not active")

        if permission is not None and not has_permission(employee.get("employeeRole"), permission):
            raise PermissionDeniedError(
                f"Role '{employee.get('employeeRole')}' cannot perform this action"
            )
        return employee

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        order = await self.sanity.fetch(ORDER_QUERY, {"orderId": order_id})
        if not order:
            raise ResourceNotFoundError("Order", order_id)
        return order

    async def _apply(
        self,
        order: Dict[str, Any],
        employee: Dict[str, Any],
        changes: Dict[str, Any],
        history_label: str,
        notes: Optional[str] = None,
        notify_status: Optional[str] = None,
        performance: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        """Patch the order with history, then notify and record performance."""
        history = list(order.get("statusHistory") or [])
        history.append(
            {
                "_key": uuid.uuid4().hex[:12],
                "status": history_label,
                "changedBy": employee.get("email"),
                "changedByRole": employee.get("employeeRole"),
                "changedAt": _now(),
                "notes": notes,
            }
        )
        updated = await self.sanity.patch(
            order["_id"], set={**changes, "statusHistory": history}
        )

        if notify_status:
            await self.notifications.notify_order_status_safely(
                order.get("clerkUserId"), order.get("orderNumber", ""), order["_id"], notify_status
            )

        if performance:
            await self._record_performance(employee, performance)

        logger.info(
            f"Order {order.get('orderNumber')} -> {history_label} by {employee.get('email')}"
        )
        return updated

    async def _record_performance(self, employee: Dict[str, Any], counters: Dict[str, float]) -> None:
        current = dict(employee.get("employeePerformance") or {})
        for key, amount in counters.items():
            current[key] = (current.get(key) or 0) + amount
        current["lastActiveAt"] = _now()
        await self.sanity.patch(
            employee["_id"], set={"employeePerformance": current, "updatedAt": _now()}
        )

    async def confirm_address(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canConfirmOrders")
        order = await self.get_order(order_id)
        if order.get("status") != OrderStatus.PENDING.value:
            raise ConflictError("Only pending orders can have their address confirmed")

        await self._apply(
            order,
            employee,
            {
                "addressConfirmedBy": employee.get("email"),
                "addressConfirmedAt": _now(),
                "status": FulfillmentStatus.ADDRESS_CONFIRMED.value,
            },
            "Address Confirmed",
            notes,
            notify_status=FulfillmentStatus.ADDRESS_CONFIRMED.value,
        )
        return {"success": True, "message": "Address confirmed successfully"}

    async def confirm_order(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canConfirmOrders")
        order = await self.get_order(order_id)
        if not order.get("addressConfirmedBy"):
            raise ConflictError("Please confirm the address first")

        await self._apply(
            order,
            employee,
            {
                "orderConfirmedBy": employee.get("email"),
                "orderConfirmedAt": _now(),
                "status": FulfillmentStatus.ORDER_CONFIRMED.value,
            },
            "Order Confirmed",
            notes,
            notify_status=FulfillmentStatus.ORDER_CONFIRMED.value,
            performance={"ordersProcessed": 1, "ordersConfirmed": 1},
        )
        return {"success": True, "message": "Order confirmed successfully"}

    async def mark_packed(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canPackOrders")
        order = await self.get_order(order_id)
        if not order.get("orderConfirmedBy"):
            raise ConflictError("Order must be confirmed before packing")

        await self._apply(
            order,
            employee,
            {
                "packedBy": employee.get("email"),
                "packedAt": _now(),
                "packingNotes": notes,
                "status": FulfillmentStatus.PACKED.value,
            },
            "Order Packed",
            notes,
            notify_status=FulfillmentStatus.PACKED.value,
            performance={"ordersProcessed": 1, "ordersPacked": 1},
        )
        return {"success": True, "message": "Order marked as packed successfully"}

    async def assign_deliveryman(
        self, clerk_user_id: str, order_id: str, deliveryman_id: Optional[str], notes: Optional[str] = None
    ):
        if not deliveryman_id:
            raise InvalidRequestError("Deliveryman ID is required")

        employee = await self.get_employee(clerk_user_id, "canAssignDelivery")
        order = await self.get_order(order_id)
        if not order.get("packedBy"):
            raise ConflictError("Order must be packed before assigning to deliveryman")

        deliveryman = await self.sanity.fetch(EMPLOYEE_BY_ID_QUERY, {"employeeId": deliveryman_id})
        if not deliveryman or deliveryman.get("employeeRole") != EmployeeRole.DELIVERYMAN.value:
            raise ResourceNotFoundError("Deliveryman", deliveryman_id)

        name = employee_name(deliveryman)
        await self._apply(
            order,
            employee,
            {
                "assignedDeliverymanId": deliveryman_id,
                "assignedDeliverymanName": name,
                "dispatchedBy": employee.get("email"),
                "dispatchedAt": _now(),
                "status": FulfillmentStatus.READY_FOR_DELIVERY.value,
            },
            "Assigned for Delivery",
            notes or f"Assigned to {name}",
            notify_status=FulfillmentStatus.READY_FOR_DELIVERY.value,
            performance={"ordersProcessed": 1, "ordersAssignedForDelivery": 1},
        )
        return {"success": True, "message": f"Order assigned to {name}"}

    def _check_assignee(self, employee: Dict[str, Any], order: Dict[str, Any]) -> None:
        if employee.get("employeeRole") == EmployeeRole.INCHARGE.value:
            return
        if order.get("assignedDeliverymanId") != employee.get("_id"):
            raise PermissionDeniedError("This order is not assigned to you")

    async def start_delivery(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canDeliverOrders")
        order = await self.get_order(order_id)
        self._check_assignee(employee, order)
        if order.get("status") not in (
            FulfillmentStatus.READY_FOR_DELIVERY.value,
            FulfillmentStatus.RESCHEDULED.value,
            FulfillmentStatus.FAILED_DELIVERY.value,
        ):
            raise ConflictError("Order is not ready for delivery")

        await self._apply(
            order,
            employee,
            {
                "status": OrderStatus.OUT_FOR_DELIVERY.value,
                "deliveryAttempts": (order.get("deliveryAttempts") or 0) + 1,
            },
            "Out for Delivery",
            notes,
            notify_status=OrderStatus.OUT_FOR_DELIVERY.value,
        )
        return {"success": True, "message": "Delivery started"}

    async def collect_cash(self, clerk_user_id: str, order_id: str, amount: float):
        employee = await self.get_employee(clerk_user_id, "canCollectCash")
        order = await self.get_order(order_id)
        if order.get("cashCollected"):
            raise ConflictError("Cash has already been collected for this order")

        await self._apply(
            order,
            employee,
            {
                "cashCollected": True,
                "cashCollectedAmount": amount,
                "cashCollectedAt": _now(),
                "paymentStatus": PaymentStatus.PAID.value,
            },
            "Cash Collected",
            f"Cash collected: ${amount}",
            performance={"cashCollected": amount},
        )
        return {"success": True, "message": f"Cash collected: ${amount}"}

    async def mark_delivered(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canDeliverOrders")
        order = await self.get_order(order_id)
        self._check_assignee(employee, order)

        is_cod = order.get("paymentMethod") == PaymentMethod.CASH_ON_DELIVERY.value
        is_pending = order.get("paymentStatus") == PaymentStatus.PENDING.value
        if (is_cod or is_pending) and not order.get("cashCollected"):
            raise ConflictError("Please collect cash before marking the order as delivered")

        await self._apply(
            order,
            employee,
            {
                "deliveredBy": employee.get("email"),
                "deliveredAt": _now(),
                "deliveryNotes": notes,
                "status": OrderStatus.DELIVERED.value,
            },
            "Delivered",
            notes,
            notify_status=OrderStatus.DELIVERED.value,
            performance={"ordersProcessed": 1, "ordersDelivered": 1},
        )
        return {"success": True, "message": "Order delivered successfully"}

    async def reschedule_delivery(
        self, clerk_user_id: str, order_id: str, new_date: Optional[str], reason: Optional[str]
    ):
        if not new_date or not reason:
            raise InvalidRequestError("New date and reason are required")

        employee = await self.get_employee(clerk_user_id, "canDeliverOrders")
        order = await self.get_order(order_id)
        self._check_assignee(employee, order)

        await self._apply(
            order,
            employee,
            {
                "rescheduledDate": new_date,
                "rescheduledReason": reason,
                "status": FulfillmentStatus.RESCHEDULED.value,
            },
            "Delivery Rescheduled",
            f"Rescheduled to {new_date}: {reason}",
            notify_status=FulfillmentStatus.RESCHEDULED.value,
        )
        return {"success": True, "message": "Delivery rescheduled successfully"}

    async def mark_delivery_failed(self, clerk_user_id: str, order_id: str, reason: Optional[str]):
        if not reason:
            raise InvalidRequestError("Reason is required")

        employee = await self.get_employee(clerk_user_id, "canDeliverOrders")
        order = await self.get_order(order_id)
        self._check_assignee(employee, order)

        await self._apply(
            order,
            employee,
            {
                "deliveryNotes": reason,
                "deliveryAttempts": (order.get("deliveryAttempts") or 0) + 1,
                "status": FulfillmentStatus.FAILED_DELIVERY.value,
            },
            "Delivery Failed",
            reason,
            notify_status=FulfillmentStatus.FAILED_DELIVERY.value,
        )
        return {"success": True, "message": "Delivery marked as failed"}

    async def submit_cash_to_accounts(
        self,
        clerk_user_id: str,
        order_id: str,
        accounts_employee_id: Optional[str],
        notes: Optional[str] = None,
    ):
        if not accounts_employee_id:
            raise InvalidRequestError("Accounts employee ID is required")

        employee = await self.get_employee(clerk_user_id, "canCollectCash")
        order = await self.get_order(order_id)
        if not order.get("cashCollected"):
            raise ConflictError("Cash has not been collected for this order")
        if order.get("cashSubmissionStatus") == "pending":
            raise ConflictError("Cash submission is already pending confirmation")
        if order.get("cashSubmissionStatus") == "confirmed":
            raise ConflictError("Cash has already been received by accounts")

        accounts = await self.sanity.fetch(EMPLOYEE_BY_ID_QUERY, {"employeeId": accounts_employee_id})
        if (
            not accounts
            or accounts.get("employeeRole")
            not in (EmployeeRole.ACCOUNTS.value, EmployeeRole.INCHARGE.value)
            or accounts.get("employeeStatus", EmployeeStatus.ACTIVE.value) != EmployeeStatus.ACTIVE.value
        ):
            raise ResourceNotFoundError("Accounts employee", accounts_employee_id)

        name = employee_name(accounts)
        await self._apply(
            order,
            employee,
            {
                "cashSubmittedToAccounts": True,
                "cashSubmittedBy": employee.get("email"),
                "cashSubmittedAt": _now(),
                "cashSubmissionNotes": notes,
                "cashSubmissionStatus": "pending",
                "assignedAccountsEmployeeId": accounts_employee_id,
                "assignedAccountsEmployeeName": name,
            },
            "Cash Submitted to Accounts",
            notes or f"Submitted to {name}",
        )
        return {"success": True, "message": f"Cash submitted to {name}"}

    async def receive_payment(self, clerk_user_id: str, order_id: str, notes: Optional[str] = None):
        employee = await self.get_employee(clerk_user_id, "canReceivePayments")
        order = await self.get_order(order_id)
        if not order.get("cashCollected"):
            raise ConflictError("Cash has not been collected for this order")
        if not order.get("cashSubmittedToAccounts"):
            raise ConflictError("Cash has not been submitted to accounts yet")
        if order.get("cashSubmissionStatus") == "confirmed":
            raise ConflictError("Payment has already been received")

        await self._apply(
            order,
            employee,
            {
                "paymentReceivedBy": employee.get("email"),
                "paymentReceivedAt": _now(),
                "cashSubmissionStatus": "confirmed",
                "paymentStatus": PaymentStatus.PAID.value,
                "status": FulfillmentStatus.COMPLETED.value,
            },
            "Payment Received",
            notes,
            notify_status=FulfillmentStatus.COMPLETED.value,
            performance={"paymentsReceived": 1},
        )
        return {"success": True, "message": "Payment received successfully"}

    async def reject_cash_submission(self, clerk_user_id: str, order_id: str, reason: Optional[str]):
        """Send a pending cash hand-over back to the deliveryman, who can resubmit."""
        reason = (reason or "").strip()
        if not reason:
            raise InvalidRequestError("Please provide a reason for rejection")

        employee = await self.get_employee(clerk_user_id, "canReceivePayments")
        order = await self.get_order(order_id)
        if not order.get("cashSubmittedToAccounts"):
            raise ConflictError("No cash submission found for this order")
        if order.get("cashSubmissionStatus") == "confirmed":
            raise ConflictError("Cannot reject a confirmed cash submission")

        await self._apply(
            order,
            employee,
            {
                "cashSubmissionStatus": "rejected",
                "cashSubmissionRejectionReason": reason,
                "cashSubmittedToAccounts": False,
                "assignedAccountsEmployeeId": None,
                "assignedAccountsEmployeeName": None,
            },
            "Cash Submission Rejected",
            f"Rejected by {employee_name(employee)}: {reason}",
        )
        return {"success": True, "message": "Cash submission rejected. Deliveryman can resubmit."}

    async def orders_for_accounts(self, clerk_user_id: str) -> List[Dict[str, Any]]:
        """Orders with cash handed to accounts, payment already received, or paid by card."""
        await self.get_employee(clerk_user_id, "canReceivePayments")
        return await self.sanity.fetch(ACCOUNTS_ORDERS_QUERY) or []

    async def accounts_payment_stats(self, clerk_user_id: str) -> Dict[str, Any]:
        await self.get_employee(clerk_user_id, "canReceivePayments")
        raw = await self.sanity.fetch(ACCOUNTS_PAYMENT_STATS_QUERY)
        return build_accounts_payment_stats(raw or {})

    async def orders_for_employee(self, clerk_user_id: str) -> List[Dict[str, Any]]:
        """Orders in the signed-in employee's work queue."""
        employee = await self.get_employee(clerk_user_id)
        try:
            role = EmployeeRole(employee.get("employeeRole"))
        except ValueError:
            raise PermissionDeniedError("Unknown employee role")

        statuses = ROLE_ORDER_QUEUES[role]
        conditions = ['_type == "order"']
        params: Dict[str, Any] = {}
        if statuses is not None:
            conditions.append("status in $statuses")
            params["statuses"] = statuses
        if role == EmployeeRole.DELIVERYMAN:
            conditions.append("assignedDeliverymanId == $employeeId")
            params["employeeId"] = employee["_id"]

        query = f"*[{' && '.join(conditions)}] | order(orderDate desc) {EMPLOYEE_ORDER_PROJECTION}"
        return await self.sanity.fetch(query, params) or []
