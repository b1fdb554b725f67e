"""
Checkout routes.
Stripe hosted checkout and Clerk payment completion.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from .orders import OWNED_ORDER_QUERY, get_checkout_service
from ..dependencies import (
    get_cache,
    get_current_user,
    get_notification_service,
    get_sanity_client,
    get_stripe_client,
)
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.order import (
    ClerkCheckoutCompleteRequest,
    StripeCheckoutRequest,
    StripeConfirmRequest,
)
from ..services.cache_service import CacheService
from ..services.checkout_service import CheckoutService
from ..services.notification_service import NotificationService
from ...clients import ClerkUser, SanityClient, StripeClient
from ...models.order_status import OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("/stripe")
async def create_stripe_checkout(
    body: StripeCheckoutRequest,
    user: ClerkUser = Depends(get_current_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a Stripe Checkout session for a just-placed order.

    Unit prices are read from the stored products; Stripe redirects back to
    the storefront success page or to the order page on cancel.
    """
    if not body.order_id:
        raise InvalidRequestError("Order ID is required")
    if not body.items:
        raise InvalidRequestError("No items provided")

    return await checkout.create_cart_session(
        order_id=body.order_id,
        order_number=body.order_number,
        items=body.items,
        email=body.email or user.email,
        shipping_address=body.shipping_address,
        order_amount=body.order_amount,
    )


@router.post("/clerk/complete")
async def complete_clerk_checkout(
    body: ClerkCheckoutCompleteRequest,
    user: ClerkUser = Depends(get_current_user),
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
):
    """Record the outcome of a Clerk-hosted payment on the order."""
    if not body.order_id or not body.session_id:
        raise InvalidRequestError("Order ID and Session ID are required")

    order = await sanity.fetch(OWNED_ORDER_QUERY, {"orderId": body.order_id, "userId": user.id})
    if not order:
        raise ResourceNotFoundError("Order", body.order_id)

    status = body.status or "completed"
    updated = await sanity.patch(
        body.order_id,
        set={
            "clerkPaymentId": body.session_id,
            "clerkPaymentStatus": status,
            "paymentStatus": (
                PaymentStatus.PAID.value if body.status == "completed" else PaymentStatus.PENDING.value
            ),
            "stripePaymentIntentId": body.session_id,
        },
    )
    cache.invalidate_order(body.order_id, user.id)

    return {"success": True, "order": updated, "message": "Payment status updated successfully"}


@router.post("/stripe/confirm")
async def confirm_stripe_checkout(
    body: StripeConfirmRequest,
    user: ClerkUser = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe_client),
    sanity: SanityClient = Depends(get_sanity_client),
    notifications: NotificationService = Depends(get_notification_service),
    cache: CacheService = Depends(get_cache),
):
    """
    Reconcile an order after Stripe redirects to the success page.

    The order is marked paid only when Stripe reports the session as paid.
    """
    if not body.session_id:
        raise InvalidRequestError("Session ID is required")

    session = await stripe.retrieve_checkout_session(body.session_id)
    order_id = (session.get("metadata") or {}).get("orderId")
    if not order_id:
        raise InvalidRequestError("Checkout session is not linked to an order")

    order = await sanity.fetch(OWNED_ORDER_QUERY, {"orderId": order_id, "userId": user.id})
    if not order:
        raise ResourceNotFoundError("Order", order_id)

    if session.get("payment_status") != "paid":
        return {"success": False, "paid": False, "orderId": order_id}

    if order.get("paymentStatus") != PaymentStatus.PAID.value:
        await sanity.patch(
            order_id,
            set={
                "status": OrderStatus.PAID.value,
                "paymentStatus": PaymentStatus.PAID.value,
                "stripeCheckoutSessionId": body.session_id,
                "stripePaymentIntentId": session.get("payment_intent") or "",
                "paymentCompletedAt": datetime.utcnow().isoformat() + "Z",
            },
        )
        cache.invalidate_order(order_id, user.id)
        await notifications.notify_order_status_safely(
            user.id, order.get("orderNumber", ""), order_id, OrderStatus.PAID.value
        )

    return {"success": True, "paid": True, "orderId": order_id}
