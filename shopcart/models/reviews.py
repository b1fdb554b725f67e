"""
Product rating statistics derived from approved reviews.
"""

from typing import Any, Dict, Iterable, Mapping

REVIEW_STATUSES = ("pending", "approved", "rejected")
REVIEW_ACTIONS = {"approve": "approved", "reject": "rejected"}

_STAR_KEYS = {5: "fiveStars", 4: "fourStars", 3: "threeStars", 2: "twoStars", 1: "oneStar"}


def empty_distribution() -> Dict[str, int]:
    return {key: 0 for key in _STAR_KEYS.values()}


def compute_rating_stats(reviews: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Aggregate ratings into the fields stored on a product.

    Returns ``averageRating`` (one decimal), ``totalReviews`` and a
    ``ratingDistribution`` keyed fiveStars..oneStar. Ratings outside 1-5
    count towards the average but not the distribution.
    """
    ratings = [float(r.get("rating") or 0) for r in reviews]
    distribution = empty_distribution()
    for rating in ratings:
        key = _STAR_KEYS.get(int(rating)) if rating.is_integer() else None
        if key:
            distribution[key] += 1

    total = len(ratings)
    average = round(sum(ratings) / total, 1) if total else 0.0

    return {
        "averageRating": average,
        "totalReviews": total,
        "ratingDistribution": distribution,
    }
