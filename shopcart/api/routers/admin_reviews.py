"""
Admin review moderation routes.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_cache, get_sanity_client, require_admin
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.admin import ReviewModerationRequest
from ..services.cache_service import CacheKeys, CacheService
from ...clients import ClerkUser, SanityClient
from ...models.reviews import REVIEW_ACTIONS, REVIEW_STATUSES, compute_rating_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/reviews", tags=["Admin"])

REVIEWS_BY_STATUS_QUERY = """*[_type == "review" && status == $status] | order(createdAt desc) {
  _id, rating, title, content, isVerifiedPurchase, helpful,
  createdAt, updatedAt, approvedAt, adminNotes,
  product->{ _id, name, "slug": slug.current, "image": images[0].asset->url },
  user->{ _id, firstName, lastName, email, profileImage { asset->{ url } } }
}"""
REVIEW_QUERY = """*[_type == "review" && _id == $reviewId][0]{
  _id, rating, product->{ _id, averageRating, totalReviews, ratingDistribution }
}"""
APPROVED_RATINGS_QUERY = (
    '*[_type == "review" && product._ref == $productId && status == "approved"]{ rating }'
)


@router.get("")
async def list_reviews(
    status: str = Query("pending"),
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
):
    if status not in REVIEW_STATUSES:
        raise InvalidRequestError("Invalid status parameter")

    reviews = await sanity.fetch(REVIEWS_BY_STATUS_QUERY, {"status": status}) or []
    return {"success": True, "reviews": reviews, "count": len(reviews)}


@router.patch("")
async def moderate_review(
    body: ReviewModerationRequest,
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
    cache: CacheService = Depends(get_cache),
):
    """
    Approve or reject a review.

    Approval recomputes the product's rating summary from all of its
    approved reviews.
    """
    if not body.review_id or not body.action:
        raise InvalidRequestError("Review ID and action are required")
    if body.action not in REVIEW_ACTIONS:
        raise InvalidRequestError("Invalid action. Must be 'approve' or 'reject'")

    review = await sanity.fetch(REVIEW_QUERY, {"reviewId": body.review_id})
    if not review:
        raise ResourceNotFoundError("Review", body.review_id)

    now = datetime.utcnow().isoformat() + "Z"
    new_status = REVIEW_ACTIONS[body.action]
    fields = {"status": new_status, "updatedAt": now}
    if body.action == "approve":
        fields.update({"approvedAt": now, "approvedBy": admin.email})
    if body.admin_notes:
        fields["adminNotes"] = body.admin_notes
    await sanity.patch(body.review_id, set=fields)

    product = review.get("product")
    if body.action == "approve" and product:
        approved = await sanity.fetch(APPROVED_RATINGS_QUERY, {"productId": product["_id"]}) or []
        if approved:
            await sanity.patch(product["_id"], set=compute_rating_stats(approved))
    if product:
        cache.invalidate(CacheKeys.product_reviews(product["_id"]))

    logger.info(f"Review {body.review_id} {new_status} by {admin.email}")
    return {"success": True, "message": f"Review {body.action}d successfully", "status": new_status}
