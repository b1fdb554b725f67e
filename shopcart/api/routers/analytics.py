"""
Analytics routes.
Server-side event tracking and best-seller reports.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_sanity_client
from ..errors import InvalidRequestError
from ..schemas.contact import AnalyticsEvent
from ..services.analytics_service import track_event
from ...clients import SanityClient
from ...models.analytics import REVENUE_STATUSES, aggregate_best_sellers, timeframe_start
from ...models.stats import sum_values

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

ORDERS_SINCE_QUERY = """*[_type == "order" && orderDate >= $startDate] {
  products[]{ product->, quantity },
  totalPrice,
  status
}"""
ORDER_COUNT_SINCE_QUERY = 'count(*[_type == "order" && orderDate >= $startDate])'
REVENUE_SINCE_QUERY = (
    '*[_type == "order" && orderDate >= $startDate && status in $statuses].totalPrice'
)


@router.post("/track")
async def track(body: AnalyticsEvent):
    if not body.event_name:
        raise InvalidRequestError("Event name is required")
    track_event(body.event_name, body.event_params)
    return {"success": True}


@router.get("/best-sellers")
async def best_sellers(
    timeframe: str = Query("monthly"),
    limit: int = Query(10, ge=1, le=100),
    sanity: SanityClient = Depends(get_sanity_client),
):
    """
    Best-selling products for a trailing window.

    Args:
        timeframe: weekly, monthly or yearly (7, 30 or 365 days)
        limit: Number of products to return
    """
    start = timeframe_start(timeframe).isoformat() + "Z"
    orders, total_orders, revenue_prices = await asyncio.gather(
        sanity.fetch(ORDERS_SINCE_QUERY, {"startDate": start}),
        sanity.fetch(ORDER_COUNT_SINCE_QUERY, {"startDate": start}),
        sanity.fetch(REVENUE_SINCE_QUERY, {"startDate": start, "statuses": list(REVENUE_STATUSES)}),
    )

    top = aggregate_best_sellers(orders or [], limit)
    track_event(
        "best_selling_products",
        {
            "timeframe": timeframe,
            "totalProducts": len(top),
            "totalRevenue": sum(p["revenue"] for p in top),
            "totalSales": sum(p["salesCount"] for p in top),
        },
    )

    total_orders = total_orders or 0
    total_revenue = sum_values(revenue_prices)
    return {
        "success": True,
        "data": {
            "bestSellers": top,
            "analytics": {
                "timeframe": timeframe,
                "totalOrders": total_orders,
                "totalRevenue": total_revenue,
                "totalProducts": len(top),
                "averageOrderValue": total_revenue / total_orders if total_orders else 0,
            },
        },
    }
