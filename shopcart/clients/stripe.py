"""
Stripe Client
Hosted Checkout sessions and customers through the Stripe SDK.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import stripe

from ..api.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def build_line_item(
    name: Optional[str],
    unit_price: float,
    quantity: Optional[int] = 1,
    currency: str = "usd",
    description: Optional[str] = None,
    images: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a ``price_data`` line item for a Checkout session."""
    product_data: Dict[str, Any] = {"name": name or "Product"}
    if description:
        product_data["description"] = description
    if images:
        product_data["images"] = [image for image in images if image]
    if metadata:
        product_data["metadata"] = metadata

    return {
        "price_data": {
            "currency": (currency or "usd").lower(),
            "product_data": product_data,
            "unit_amount": to_cents(unit_price),
        },
        "quantity": quantity or 1,
    }


class StripeClient:
    """
    Async facade over the parts of the Stripe SDK the storefront uses.

    The SDK is blocking, so each call runs in a worker thread. The API key
    is passed per request rather than set on the ``stripe`` module.
    """

    SERVICE = "Stripe"

    def __init__(self, secret_key: str):
        self.secret_key = secret_key

    async def _call(self, operation: str, func, *args, **params) -> Any:
        try:
            return await asyncio.to_thread(func, *args, api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error(
                f"Stripe {operation} failed ({e.http_status}): {message}", exc_info=True
            )
            raise UpstreamServiceError(self.SERVICE, message, e.http_status)

    async def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a hosted Checkout session.

        Args:
            params: Session parameters (line_items, mode, success_url, ...)

        Returns:
            The session object; ``id`` and ``url`` are what callers need
        """
        return await self._call("checkout session create", stripe.checkout.Session.create, **params)

    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        return await self._call(
            "checkout session retrieve", stripe.checkout.Session.retrieve, session_id
        )

    async def find_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        result = await self._call("customer list", stripe.Customer.list, email=email, limit=1)
        customers = result.get("data") or []
        return customers[0] if customers else None

    async def create_customer(
        self, email: str, name: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"email": email}
        if name:
            params["name"] = name
        if metadata:
            params["metadata"] = metadata
        return await self._call("customer create", stripe.Customer.create, **params)

    async def find_or_create_customer(
        self, email: str, name: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        customer = await self.find_customer_by_email(email)
        if customer:
            return customer
        logger.info(f"Creating Stripe customer for {email}")
        return await self.create_customer(email, name=name, metadata=metadata)
