"""
Address request schemas.
"""

from typing import Optional

from pydantic import Field

from .common import CamelModel


class AddressRequest(CamelModel):
    """Shipping address as submitted from the profile and checkout pages."""

    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    is_default: bool = Field(False, description="Make this the user's default address")

    def missing_required(self) -> bool:
        return not all(
            (value or "").strip()
            for value in (self.name, self.address, self.city, self.state, self.zip)
        )
