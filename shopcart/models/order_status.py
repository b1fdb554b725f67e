"""
Order and payment status labels.

These are plain string constants. Route handlers compare and set them
directly; nothing here enforces transitions.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FulfillmentStatus(str, Enum):
    """Intermediate statuses written by the employee fulfilment workflow."""

    ADDRESS_CONFIRMED = "address_confirmed"
    ORDER_CONFIRMED = "order_confirmed"
    PACKED = "packed"
    READY_FOR_DELIVERY = "ready_for_delivery"
    RESCHEDULED = "rescheduled"
    FAILED_DELIVERY = "failed_delivery"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    STRIPE = "stripe"
    CLERK = "clerk"
    CARD = "card"


ORDER_STATUSES = [s.value for s in OrderStatus]
PAYMENT_STATUSES = [s.value for s in PaymentStatus]
PAYMENT_METHODS = [m.value for m in PaymentMethod]

# Statuses counted as "open" on the user dashboard
OPEN_ORDER_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value)


def is_order_paid(order: Dict[str, Any]) -> bool:
    return (
        order.get("status") == OrderStatus.PAID.value
        or order.get("paymentStatus") == PaymentStatus.PAID.value
    )


def is_order_cancelled(order: Dict[str, Any]) -> bool:
    return order.get("status") == OrderStatus.CANCELLED.value


def can_pay(order: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Whether a payment may be started for ``order``, with the refusal reason."""
    if is_order_paid(order):
        return False, "Order is already paid"
    if is_order_cancelled(order):
        return False, "Cannot pay for cancelled order"
    return True, None


def can_cancel(order: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    if is_order_cancelled(order):
        return False, "Order is already cancelled"
    if is_order_paid(order):
        return False, "Paid orders cannot be cancelled"
    if order.get("status") not in OPEN_ORDER_STATUSES:
        return False, f"Orders in status '{order.get('status')}' cannot be cancelled"
    return True, None
