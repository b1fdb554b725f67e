"""
Admin dashboard statistics and analytics routes.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..dependencies import get_cache, get_clerk_client, get_sanity_client, require_admin
from ..errors import InvalidRequestError, UpstreamServiceError
from ..services.cache_service import CacheKeys, CacheService
from ...clients import ClerkClient, ClerkUser, SanityClient
from ...models.analytics import ANALYTICS_PERIOD_DAYS, analytics_windows, build_analytics_overview
from ...models.stats import STATS_QUERY, build_admin_stats, month_ranges

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])

STATS_CACHE_CONTROL = "private, max-age=60, stale-while-revalidate=30"


async def _total_users(clerk: ClerkClient) -> int:
    try:
        return await clerk.get_user_count()
    except UpstreamServiceError as e:
        logger.warning(f"Clerk user count unavailable, reporting 0: {e.message}")
        return 0


@router.get("/stats")
async def get_admin_stats(
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
    clerk: ClerkClient = Depends(get_clerk_client),
    cache: CacheService = Depends(get_cache),
):
    """
    Revenue, order, user and product totals with month-over-month changes.

    The aggregate query and the Clerk user count run concurrently; the
    result is cached briefly since every dashboard load hits this route.
    """
    headers = {"Cache-Control": STATS_CACHE_CONTROL}

    cached = cache.get(CacheKeys.ADMIN_STATS, key_type="admin_stats")
    if cached is not None:
        return JSONResponse(content=cached, headers=headers)

    raw, total_users = await asyncio.gather(
        sanity.fetch(STATS_QUERY, month_ranges()),
        _total_users(clerk),
    )
    stats = build_admin_stats(raw or {}, total_users)

    cache.set(CacheKeys.ADMIN_STATS, stats, ttl=get_settings().cache_ttl_stats)
    return JSONResponse(content=stats, headers=headers)


ANALYTICS_ORDER_FIELDS = """{
  _id, orderNumber, totalPrice, status, orderDate,
  products[]{ quantity, product->{ name, price } }
}"""
CURRENT_PERIOD_ORDERS_QUERY = (
    '*[_type == "order" && dateTime(orderDate) >= dateTime($startDate)'
    " && dateTime(orderDate) <= dateTime($currentDate)]" + ANALYTICS_ORDER_FIELDS
)
PREVIOUS_PERIOD_ORDERS_QUERY = (
    '*[_type == "order" && dateTime(orderDate) >= dateTime($prevStartDate)'
    " && dateTime(orderDate) < dateTime($startDate)]{ _id, totalPrice, status }"
)
PRODUCT_COUNT_QUERY = 'count(*[_type == "product"])'


@router.get("/analytics")
async def get_admin_analytics(
    period: str = Query("30d", description="7d, 30d, 90d or 365d"),
    analytics_type: str = Query("overview", alias="type"),
    admin: ClerkUser = Depends(require_admin),
    sanity: SanityClient = Depends(get_sanity_client),
    clerk: ClerkClient = Depends(get_clerk_client),
    cache: CacheService = Depends(get_cache),
):
    """
    Revenue, orders, top products and recent activity for a period.

    Changes compare against the preceding period of the same length.
    """
    if analytics_type != "overview":
        raise InvalidRequestError("Invalid analytics type")

    if period not in ANALYTICS_PERIOD_DAYS:
        period = "30d"
    key = CacheKeys.admin_analytics(period)
    cached = cache.get(key, key_type="admin_analytics")
    if cached is not None:
        return cached

    windows = analytics_windows(period)
    current, previous, total_products, total_users = await asyncio.gather(
        sanity.fetch(CURRENT_PERIOD_ORDERS_QUERY, windows),
        sanity.fetch(PREVIOUS_PERIOD_ORDERS_QUERY, windows),
        sanity.fetch(PRODUCT_COUNT_QUERY),
        _total_users(clerk),
    )
    overview = build_analytics_overview(current or [], previous or [], total_products or 0, total_users)

    cache.set(key, overview, ttl=get_settings().cache_ttl_stats)
    return overview
