"""
Customer review routes.
"""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_cache, get_current_user, get_sanity_client
from ..errors import InvalidRequestError
from ..schemas.review import ReviewSubmitRequest
from ..services.cache_service import CacheService
from ..services.review_service import ReviewService
from ...clients import ClerkUser, SanityClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


def get_review_service(
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
) -> ReviewService:
    return ReviewService(sanity, cache)


@router.post("")
async def submit_review(
    body: ReviewSubmitRequest,
    user: ClerkUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    """Submit a review; it is published once an admin approves it."""
    title = (body.title or "").strip()
    content = (body.content or "").strip()
    if not body.product_id or body.rating is None or not title or not content:
        raise InvalidRequestError("Product, rating, title and content are required")

    return await service.submit_review(user.id, body.product_id, body.rating, title, content)


@router.get("/product/{product_id}")
async def product_reviews(
    product_id: str,
    service: ReviewService = Depends(get_review_service),
):
    return {"success": True, **await service.product_reviews(product_id)}


@router.get("/product/{product_id}/eligibility")
async def review_eligibility(
    product_id: str,
    user: ClerkUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.review_eligibility(user.id, product_id)


@router.post("/{review_id}/helpful")
async def mark_helpful(
    review_id: str,
    user: ClerkUser = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return await service.toggle_helpful(user.id, review_id)
