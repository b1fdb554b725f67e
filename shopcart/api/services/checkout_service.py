"""
Checkout Service
Builds Stripe Checkout sessions for carts and stored orders.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..errors import InvalidRequestError
from ..schemas.order import CartItem
from ...clients import SanityClient, StripeClient, build_line_item
from ...models.order_status import can_pay

logger = logging.getLogger(__name__)

ORDER_FOR_PAYMENT_QUERY = """*[_type == "order" && _id == $orderId && clerkUserId == $clerkUserId][0]{
  _id,
  orderNumber,
  clerkUserId,
  customerName,
  email,
  products[]{
    _key,
    quantity,
    product->{
      _id,
      name,
      price,
      currency,
      "images": images[].asset->url
    }
  },
  subtotal,
  tax,
  shipping,
  totalPrice,
  currency,
  status,
  paymentStatus,
  stripeCustomerId
}"""


CART_PRODUCTS_QUERY = """*[_type == "product" && _id in $ids]{
  _id, name, description, price, "images": images[].asset->url
}"""


def image_urls(images: Optional[List[Any]]) -> List[str]:
    """Keep plain URLs and resolved Sanity asset URLs; drop unresolved references."""
    urls = []
    for image in images or []:
        if isinstance(image, str) and image:
            urls.append(image)
        elif isinstance(image, dict):
            url = image.get("url") or (image.get("asset") or {}).get("url")
            if url:
                urls.append(url)
    return urls


class CheckoutService:
    """Creates hosted checkout sessions and records them on orders."""

    def __init__(self, stripe: StripeClient, sanity: SanityClient, base_url: Optional[str] = None):
        self.stripe = stripe
        self.sanity = sanity
        self.base_url = (base_url or get_settings().base_url).rstrip("/")

    async def _catalog_prices(self, items: List[CartItem]) -> Dict[str, Dict[str, Any]]:
        """Stored product records for the cart, keyed by id."""
        if any(not item.product.id for item in items):
            raise InvalidRequestError("Every item must reference a product")
        ids = sorted({item.product.id for item in items})
        products = await self.sanity.fetch(CART_PRODUCTS_QUERY, {"ids": ids}) or []
        catalog = {product["_id"]: product for product in products}
        missing = [product_id for product_id in ids if product_id not in catalog]
        if missing:
            raise InvalidRequestError(f"Products not found: {', '.join(missing)}")
        return catalog

    async def create_cart_session(
        self,
        order_id: str,
        order_number: Optional[str],
        items: List[CartItem],
        email: Optional[str],
        shipping_address: Optional[Dict[str, Any]] = None,
        order_amount: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Checkout session for a freshly placed order.

        Quantities come from the cart. Names, images and unit prices come
        from the stored products, never from the cart payload.
        """
        order_number = order_number or ""
        catalog = await self._catalog_prices(items)
        line_items = []
        for item in items:
            product = catalog[item.product.id]
            line_items.append(
                build_line_item(
                    name=product.get("name"),
                    unit_price=product.get("price") or 0,
                    quantity=item.quantity,
                    currency="usd",
                    description=product.get("description"),
                    images=image_urls(product.get("images"))[:1],
                    metadata={"productId": product["_id"], "orderId": order_id},
                )
            )

        session = await self.stripe.create_checkout_session(
            {
                "payment_method_types": ["card"],
                "line_items": line_items,
                "mode": "payment",
                "success_url": (
                    f"{self.base_url}/success?session_id={{CHECKOUT_SESSION_ID}}"
                    f"&order_id={order_id}&orderNumber={order_number}"
                ),
                "cancel_url": f"{self.base_url}/user/orders/{order_id}?cancelled=true",
                "metadata": {
                    "orderId": order_id,
                    "orderNumber": order_number,
                    "email": email or "",
                    "orderDate": datetime.utcnow().isoformat() + "Z",
                    "itemCount": str(len(items)),
                    "shippingAddress": json.dumps(shipping_address or {}),
                    "orderAmount": str(order_amount or 0),
                },
                "customer_email": email,
            }
        )
        logger.info(f"Stripe session {session.get('id')} created for order {order_id}")
        return {
            "success": True,
            "sessionId": session.get("id"),
            "url": session.get("url"),
            "message": "Stripe checkout session created successfully",
        }

    async def get_order_for_payment(self, order_id: str, clerk_user_id: str) -> Optional[Dict[str, Any]]:
        return await self.sanity.fetch(
            ORDER_FOR_PAYMENT_QUERY, {"orderId": order_id, "clerkUserId": clerk_user_id}
        )

    def _order_line_items(self, order: Dict[str, Any], currency: str) -> List[Dict[str, Any]]:
        line_items = []
        for item in order.get("products") or []:
            product = item.get("product") or {}
            line_items.append(
                build_line_item(
                    name=product.get("name"),
                    unit_price=product.get("price") or 0,
                    quantity=item.get("quantity") or 1,
                    currency=currency,
                    images=image_urls(product.get("images"))[:1],
                    metadata={"productId": product.get("_id") or "", "orderId": order["_id"]},
                )
            )
        return line_items

    async def create_order_session(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """Checkout session to pay a stored, unpaid order."""
        allowed, reason = can_pay(order)
        if not allowed:
            raise InvalidRequestError(reason)

        currency = (order.get("currency") or "usd").lower()
        session = await self.stripe.create_checkout_session(
            {
                "payment_method_types": ["card"],
                "line_items": self._order_line_items(order, currency),
                "mode": "payment",
                "success_url": (
                    f"{self.base_url}/success?session_id={{CHECKOUT_SESSION_ID}}"
                    f"&order_id={order['_id']}"
                ),
                "cancel_url": f"{self.base_url}/orders?payment=cancelled",
                "metadata": {
                    "orderId": order["_id"],
                    "email": order.get("email") or "",
                    "orderNumber": order.get("orderNumber") or "",
                },
                "customer_email": order.get("email"),
            }
        )
        return {
            "success": True,
            "sessionId": session.get("id"),
            "url": session.get("url"),
            "message": "Payment session created successfully",
        }

    async def create_pay_now_session(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """
        Checkout session billed to the order's Stripe customer.

        Tax and shipping are charged as separate line items. The session id
        and customer id are stored on the order.
        """
        allowed, reason = can_pay(order)
        if not allowed:
            raise InvalidRequestError(reason)
        if not order.get("products"):
            raise InvalidRequestError("No products found in order")
        if not order.get("totalPrice") or order["totalPrice"] <= 0:
            raise InvalidRequestError("Invalid order total")

        customer_id = order.get("stripeCustomerId") or ""
        if not customer_id.startswith("cus_"):
            customer = await self.stripe.find_or_create_customer(
                email=order.get("email"),
                name=order.get("customerName"),
                metadata={"clerkUserId": order.get("clerkUserId"), "orderId": order["_id"]},
            )
            customer_id = customer["id"]
            await self.sanity.patch(order["_id"], set={"stripeCustomerId": customer_id})

        currency = (order.get("currency") or "usd").lower()
        line_items = self._order_line_items(order, currency)
        for label, amount in (("Tax", order.get("tax")), ("Shipping", order.get("shipping"))):
            if amount and amount > 0:
                line_items.append(build_line_item(label, amount, 1, currency))

        session = await self.stripe.create_checkout_session(
            {
                "customer": customer_id,
                "payment_method_types": ["card"],
                "line_items": line_items,
                "mode": "payment",
                "success_url": (
                    f"{self.base_url}/success?session_id={{CHECKOUT_SESSION_ID}}"
                    f"&orderId={order['_id']}"
                ),
                "cancel_url": f"{self.base_url}/orders",
                "metadata": {
                    "orderId": order["_id"],
                    "orderNumber": order.get("orderNumber") or "",
                    "customerName": order.get("customerName") or "",
                },
            }
        )

        await self.sanity.patch(
            order["_id"],
            set={"stripeCheckoutSessionId": session.get("id"), "stripeCustomerId": customer_id},
        )
        return {
            "success": True,
            "checkoutUrl": session.get("url"),
            "sessionId": session.get("id"),
            "message": "Checkout session created successfully",
        }
