"""
Order and checkout request schemas.

Presence checks that the storefront reports with a specific 400 message
are done in the route handlers, so those fields are optional here.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import CamelModel


class ProductRef(CamelModel):
    """Product snapshot sent by the cart."""

    id: Optional[str] = Field(None, alias="_id", description="Sanity product id")
    name: Optional[str] = None
    description: Optional[str] = None
    price: float = Field(0, ge=0, allow_inf_nan=False, description="Unit price in store currency")
    images: List[Any] = Field(default_factory=list, description="Image URLs or Sanity image objects")
    category: Optional[str] = None


class CartItem(CamelModel):
    product: ProductRef
    quantity: int = Field(1, ge=1)


class ShippingAddress(CamelModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None


class OrderCreateRequest(CamelModel):
    items: Optional[List[CartItem]] = None
    shipping_address: Optional[ShippingAddress] = None
    payment_method: Optional[str] = None
    total_amount: float = Field(0, ge=0, allow_inf_nan=False)
    subtotal: Optional[float] = Field(None, allow_inf_nan=False)
    shipping: Optional[float] = Field(None, allow_inf_nan=False)
    tax: Optional[float] = Field(None, allow_inf_nan=False)


class StripeCheckoutRequest(CamelModel):
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    email: Optional[str] = None
    shipping_address: Optional[Dict[str, Any]] = None
    order_amount: Optional[float] = Field(None, allow_inf_nan=False)


class ClerkCheckoutCompleteRequest(CamelModel):
    order_id: Optional[str] = None
    session_id: Optional[str] = None
    status: Optional[str] = None


class StripeConfirmRequest(CamelModel):
    session_id: Optional[str] = None
