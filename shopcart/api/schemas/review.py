"""
Customer review schemas.
"""

from typing import Optional

from pydantic import Field

from .common import CamelModel


class ReviewSubmitRequest(CamelModel):
    product_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, max_length=100)
    content: Optional[str] = Field(None, max_length=1000)
