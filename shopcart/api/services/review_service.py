"""
Customer product reviews: submission, published listings and helpful votes.

New reviews start as ``pending`` and only appear in product listings once an
admin approves them.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .cache_service import CacheKeys, CacheService
from ..config import get_settings
from ..errors import ConflictError, ResourceNotFoundError
from ...clients import SanityClient
from ...models.reviews import compute_rating_stats

logger = logging.getLogger(__name__)

REVIEWER_QUERY = '*[_type == "user" && clerkUserId == $clerkUserId][0]{ _id, firstName, lastName }'
EXISTING_REVIEW_QUERY = (
    'count(*[_type == "review" && user._ref == $userId && product._ref == $productId]) > 0'
)
HAS_PURCHASED_QUERY = """count(*[_type == "order" && user._ref == $userId && status == "delivered"
  && $productId in products[].product._ref]) > 0"""
PRODUCT_EXISTS_QUERY = 'count(*[_type == "product" && _id == $productId]) > 0'
PUBLISHED_REVIEWS_QUERY = """*[_type == "review" && product._ref == $productId && status == "approved"]
  | order(createdAt desc) {
  _id, rating, title, content, helpful, isVerifiedPurchase, createdAt,
  user->{ _id, firstName, lastName, profileImage { asset->{ url } } }
}"""
HELPFUL_QUERY = '*[_type == "review" && _id == $reviewId][0]{ _id, helpful, helpfulBy, product }'


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _reference(document_id: str) -> Dict[str, Any]:
    return {"_type": "reference", "_ref": document_id, "_key": document_id}


class ReviewService:
    """Review operations for signed-in customers and the public product page."""

    def __init__(self, sanity: SanityClient, cache: CacheService):
        self.sanity = sanity
        self.cache = cache

    async def _reviewer(self, clerk_user_id: str) -> Dict[str, Any]:
        reviewer = await self.sanity.fetch(REVIEWER_QUERY, {"clerkUserId": clerk_user_id})
        if not reviewer:
            raise ResourceNotFoundError("User")
        return reviewer

    async def submit_review(
        self, clerk_user_id: str, product_id: str, rating: int, title: str, content: str
    ) -> Dict[str, Any]:
        """
        Create a pending review.

        A customer may review each product once. ``isVerifiedPurchase`` is
        set when the customer has a delivered order containing the product.

        Raises:
            ResourceNotFoundError: Unknown user or product
            ConflictError: The customer already reviewed this product
        """
        reviewer = await self._reviewer(clerk_user_id)
        params = {"userId": reviewer["_id"], "productId": product_id}

        if not await self.sanity.fetch(PRODUCT_EXISTS_QUERY, {"productId": product_id}):
            raise ResourceNotFoundError("Product", product_id)
        if await self.sanity.fetch(EXISTING_REVIEW_QUERY, params):
            raise ConflictError("You have already reviewed this product")

        has_purchased = bool(await self.sanity.fetch(HAS_PURCHASED_QUERY, params))
        review = await self.sanity.create(
            {
                "_type": "review",
                "product": {"_type": "reference", "_ref": product_id},
                "user": {"_type": "reference", "_ref": reviewer["_id"]},
                "rating": rating,
                "title": title,
                "content": content,
                "isVerifiedPurchase": has_purchased,
                "status": "pending",
                "helpful": 0,
                "helpfulBy": [],
                "createdAt": _now(),
            }
        )
        self.cache.invalidate(CacheKeys.product_reviews(product_id))

        logger.info(f"Review {review.get('_id')} submitted for product {product_id}")
        return {
            "success": True,
            "message": "Thank you for your review! It will be published after admin approval.",
            "reviewId": review.get("_id"),
        }

    async def product_reviews(self, product_id: str) -> Dict[str, Any]:
        """Approved reviews, newest first, with the rating summary."""
        key = CacheKeys.product_reviews(product_id)
        cached = self.cache.get(key, key_type="product_reviews")
        if cached is not None:
            return cached

        reviews = await self.sanity.fetch(PUBLISHED_REVIEWS_QUERY, {"productId": product_id}) or []
        result = {"reviews": reviews, **compute_rating_stats(reviews)}

        self.cache.set(key, result, ttl=get_settings().cache_ttl_reviews)
        return result

    async def toggle_helpful(self, clerk_user_id: str, review_id: str) -> Dict[str, Any]:
        """Mark a review helpful, or take the mark back if the user already gave it."""
        reviewer = await self._reviewer(clerk_user_id)
        review = await self.sanity.fetch(HELPFUL_QUERY, {"reviewId": review_id})
        if not review:
            raise ResourceNotFoundError("Review", review_id)

        voters = list(review.get("helpfulBy") or [])
        helpful = review.get("helpful") or 0
        already_marked = any(v.get("_ref") == reviewer["_id"] for v in voters)

        if already_marked:
            voters = [v for v in voters if v.get("_ref") != reviewer["_id"]]
            helpful = max(0, helpful - 1)
            message = "Review unmarked as helpful"
        else:
            voters.append(_reference(reviewer["_id"]))
            helpful += 1
            message = "Review marked as helpful"

        await self.sanity.patch(review_id, set={"helpful": helpful, "helpfulBy": voters})

        product_ref = (review.get("product") or {}).get("_ref")
        if product_ref:
            self.cache.invalidate(CacheKeys.product_reviews(product_ref))
        return {"success": True, "message": message, "helpful": helpful, "marked": not already_marked}

    async def review_eligibility(self, clerk_user_id: str, product_id: str) -> Dict[str, bool]:
        reviewer: Optional[Dict[str, Any]] = await self.sanity.fetch(
            REVIEWER_QUERY, {"clerkUserId": clerk_user_id}
        )
        if not reviewer:
            return {"canReview": False, "hasAlreadyReviewed": False, "hasPurchased": False}

        params = {"userId": reviewer["_id"], "productId": product_id}
        already_reviewed = bool(await self.sanity.fetch(EXISTING_REVIEW_QUERY, params))
        has_purchased = bool(await self.sanity.fetch(HAS_PURCHASED_QUERY, params))
        return {
            "canReview": not already_reviewed,
            "hasAlreadyReviewed": already_reviewed,
            "hasPurchased": has_purchased,
        }
