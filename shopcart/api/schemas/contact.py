"""
Contact form and analytics schemas.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from .common import CamelModel


class ContactRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


class AnalyticsEvent(CamelModel):
    event_name: Optional[str] = None
    event_params: Dict[str, Any] = Field(default_factory=dict)
