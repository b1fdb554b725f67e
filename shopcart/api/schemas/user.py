"""
User-specific request schemas.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from .common import CamelModel


class PointsUpdateRequest(CamelModel):
    order_total: Optional[float] = Field(
        None, ge=0, allow_inf_nan=False, description="Order total in store currency"
    )
    order_id: Optional[str] = None


class UserSettingsUpdate(CamelModel):
    preferences: Dict[str, Any] = Field(default_factory=dict)


class BusinessApplyRequest(CamelModel):
    email: Optional[str] = None
