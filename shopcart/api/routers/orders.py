"""
Order routes.
Order placement, listing, counts, payment and cancellation for the signed-in user.
"""

import logging
import math
import secrets
import time
import uuid
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from ..config import get_settings
from ..dependencies import (
    get_cache,
    get_current_user,
    get_notification_service,
    get_sanity_client,
    get_stripe_client,
)
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.order import OrderCreateRequest
from ..services.analytics_service import track_event
from ..services.cache_service import CacheKeys, CacheService
from ..services.checkout_service import CheckoutService
from ..services.notification_service import NotificationService
from ...clients import ClerkUser, SanityClient, StripeClient
from ...models.order_status import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PAYMENT_METHODS,
    can_cancel,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

MY_ORDERS_QUERY = """*[_type == "order" && clerkUserId == $userId] | order(orderDate desc)[$start...$end]{
  ...,
  products[]{
    ...,
    product->{ _id, name, slug, "image": images[0].asset->url, price, currency }
  }
}"""
ORDER_COUNT_QUERY = 'count(*[_type == "order" && clerkUserId == $userId])'
OWNED_ORDER_QUERY = '*[_type == "order" && _id == $orderId && clerkUserId == $userId][0]'


def generate_order_number() -> str:
    """``ORDER-<epoch ms>-<9 random base36 chars>``"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ORDER-{int(time.time() * 1000)}-{suffix}"


def get_checkout_service(
    stripe: StripeClient = Depends(get_stripe_client),
    sanity: SanityClient = Depends(get_sanity_client),
) -> CheckoutService:
    return CheckoutService(stripe, sanity)


async def count_user_orders(sanity: SanityClient, cache: CacheService, clerk_user_id: str) -> int:
    key = CacheKeys.user_order_count(clerk_user_id)
    cached = cache.get(key, key_type="order_count")
    if cached is not None:
        return cached

    count = await sanity.fetch(ORDER_COUNT_QUERY, {"userId": clerk_user_id}) or 0
    cache.set(key, count, ttl=get_settings().cache_ttl_user)
    return count


@router.get("")
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(5, ge=1, le=100),
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
) -> Dict[str, Any]:
    """Paginated orders, newest first."""
    start = (page - 1) * limit
    orders = await sanity.fetch(
        MY_ORDERS_QUERY, {"userId": user.id, "start": start, "end": start + limit}
    )
    total = await sanity.fetch(ORDER_COUNT_QUERY, {"userId": user.id}) or 0
    total_pages = math.ceil(total / limit) if total else 0

    return {
        "orders": orders or [],
        "totalCount": total,
        "totalPages": total_pages,
        "currentPage": page,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


@router.get("/count")
async def order_count(
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
):
    return {"count": await count_user_orders(sanity, cache, user.id)}


@router.post("")
async def create_order(
    body: OrderCreateRequest,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
    notifications: NotificationService = Depends(get_notification_service),
    cache: CacheService = Depends(get_cache),
):
    """
    Place an order in ``pending`` status.

    Payment happens afterwards through one of the checkout routes, or on
    delivery for cash orders.
    """
    if not body.items:
        raise InvalidRequestError("No items provided")
    if body.shipping_address is None:
        raise InvalidRequestError("Shipping address is required")
    if body.payment_method not in PAYMENT_METHODS:
        raise InvalidRequestError("Invalid payment method")

    order_number = generate_order_number()
    address = body.shipping_address
    method = body.payment_method

    order: Dict[str, Any] = {
        "_type": "order",
        "orderNumber": order_number,
        "customerName": user.full_name or "User",
        "email": user.email,
        "phone": user.phone or address.phone or "",
        "clerkUserId": user.id,
        "products": [
            {
                "_key": str(uuid.uuid4()),
                "product": {"_type": "reference", "_ref": item.product.id},
                "quantity": item.quantity,
            }
            for item in body.items
        ],
        "totalPrice": body.total_amount,
        "currency": "USD",
        "amountDiscount": 0,
        "address": {
            "_type": "object",
            "name": address.name,
            "address": address.address,
            "city": address.city,
            "state": address.state,
            "zip": address.zip,
        },
        "status": OrderStatus.PENDING.value,
        "orderDate": datetime.utcnow().isoformat() + "Z",
        "paymentMethod": method,
        "paymentStatus": PaymentStatus.PENDING.value,
        "subtotal": body.subtotal,
        "shipping": body.shipping,
        "tax": body.tax,
    }

    if method == PaymentMethod.STRIPE.value:
        order.update(
            {"stripeCustomerId": "", "stripePaymentIntentId": "", "stripeCheckoutSessionId": ""}
        )
    elif method == PaymentMethod.CLERK.value:
        order.update({"clerkPaymentId": "", "clerkPaymentStatus": "pending"})
    elif method == PaymentMethod.CASH_ON_DELIVERY.value:
        order["stripePaymentIntentId"] = f"cod_{order_number}"

    created = await sanity.create(order)
    cache.invalidate_order(created.get("_id"), user.id)

    track_event(
        "order_placed",
        {
            "orderId": created.get("_id"),
            "orderNumber": order_number,
            "amount": body.total_amount,
            "paymentMethod": method,
            "itemCount": len(body.items),
            "userId": user.id,
        },
    )
    await notifications.notify_order_status_safely(
        user.id, order_number, created.get("_id"), OrderStatus.PENDING.value
    )

    return {
        "success": True,
        "order": {
            "_id": created.get("_id"),
            "orderNumber": created.get("orderNumber", order_number),
            "status": created.get("status", OrderStatus.PENDING.value),
            "paymentMethod": created.get("paymentMethod", method),
            "totalPrice": created.get("totalPrice", body.total_amount),
            "currency": created.get("currency", "USD"),
        },
        "message": "Order created successfully",
    }


@router.post("/{order_id}/pay")
async def pay_order(
    order_id: str,
    user: ClerkUser = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Start a Stripe Checkout session for an unpaid order."""
    order = await checkout.get_order_for_payment(order_id, user.id)
    if not order:
        raise ResourceNotFoundError("Order", order_id)
    return await checkout.create_order_session(order)


@router.post("/{order_id}/pay-now")
async def pay_order_now(
    order_id: str,
    user: ClerkUser = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Start a Stripe Checkout session billed to the customer's Stripe account."""
    order = await checkout.get_order_for_payment(order_id, user.id)
    if not order:
        raise ResourceNotFoundError("Order", order_id)
    return await checkout.create_pay_now_session(order)


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
    notifications: NotificationService = Depends(get_notification_service),
    cache: CacheService = Depends(get_cache),
):
    order = await sanity.fetch(OWNED_ORDER_QUERY, {"orderId": order_id, "userId": user.id})
    if not order:
        raise ResourceNotFoundError("Order", order_id)

    allowed, reason = can_cancel(order)
    if not allowed:
        raise InvalidRequestError(reason)

    await sanity.patch(
        order_id,
        set={
            "status": OrderStatus.CANCELLED.value,
            "paymentStatus": PaymentStatus.CANCELLED.value,
            "cancelledAt": datetime.utcnow().isoformat() + "Z",
        },
    )
    cache.invalidate_order(order_id, user.id)
    await notifications.notify_order_status_safely(
        user.id, order.get("orderNumber", ""), order_id, OrderStatus.CANCELLED.value
    )
    return {"success": True, "message": "Order cancelled successfully"}
