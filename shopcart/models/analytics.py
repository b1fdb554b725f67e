"""
Sales analytics over order documents.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .stats import percent_change

TIMEFRAME_DAYS = {"weekly": 7, "monthly": 30, "yearly": 365}
REVENUE_STATUSES = ("delivered", "paid")


def timeframe_start(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """Window start; unknown timeframes fall back to monthly."""
    now = now or datetime.utcnow()
    return now - timedelta(days=TIMEFRAME_DAYS.get(timeframe, TIMEFRAME_DAYS["monthly"]))


def aggregate_best_sellers(orders: Iterable[Mapping[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    """
    Rank products by units sold across delivered and paid orders.

    Revenue uses the product's current price, as order lines do not carry
    a unit price.
    """
    stats: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        if order.get("status") not in REVENUE_STATUSES:
            continue
        for item in order.get("products") or []:
            product = item.get("product")
            if not product:
                continue
            quantity = item.get("quantity") or 0
            entry = stats.get(product["_id"])
            if entry is None:
                images = product.get("images") or []
                entry = stats[product["_id"]] = {
                    "productId": product["_id"],
                    "name": product.get("name"),
                    "category": product.get("category"),
                    "salesCount": 0,
                    "revenue": 0,
                    "imageUrl": ((images[0] or {}).get("asset") or {}).get("url") if images else None,
                }
            entry["salesCount"] += quantity
            entry["revenue"] += (product.get("price") or 0) * quantity

    return sorted(stats.values(), key=lambda e: e["salesCount"], reverse=True)[:limit]


# Dashboard analytics periods; unknown values use 30 days
ANALYTICS_PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "365d": 365}


def analytics_windows(period: str, now: Optional[datetime] = None) -> Dict[str, str]:
    """Current window and the equally long window before it, as ISO strings."""
    now = now or datetime.utcnow()
    days = ANALYTICS_PERIOD_DAYS.get(period, 30)
    start = now - timedelta(days=days)
    previous_start = start - timedelta(days=days)
    return {
        "currentDate": now.isoformat() + "Z",
        "startDate": start.isoformat() + "Z",
        "prevStartDate": previous_start.isoformat() + "Z",
    }


def _delivered_revenue(orders: Iterable[Mapping[str, Any]]) -> float:
    return sum(o.get("totalPrice") or 0 for o in orders if o.get("status") == "delivered")


def top_products_by_revenue(orders: Iterable[Mapping[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    """Units and revenue per product name over every order line in the window."""
    sales: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        for line in order.get("products") or []:
            product = line.get("product") or {}
            name = product.get("name") or "Unknown Product"
            quantity = line.get("quantity") or 0
            entry = sales.setdefault(name, {"name": name, "sales": 0, "revenue": 0})
            entry["sales"] += quantity
            entry["revenue"] += (product.get("price") or 0) * quantity
    return sorted(sales.values(), key=lambda e: e["revenue"], reverse=True)[:limit]


def build_analytics_overview(
    current_orders: List[Mapping[str, Any]],
    previous_orders: List[Mapping[str, Any]],
    total_products: int,
    total_users: int,
) -> Dict[str, Any]:
    """
    Dashboard overview for one period.

    Revenue counts delivered orders only. Changes compare against the
    previous window of the same length.
    """
    revenue = _delivered_revenue(current_orders)
    previous_revenue = _delivered_revenue(previous_orders)

    status_counts: Dict[str, int] = {}
    for order in current_orders:
        status = order.get("status")
        status_counts[status] = status_counts.get(status, 0) + 1

    recent = sorted(current_orders, key=lambda o: o.get("orderDate") or "", reverse=True)[:8]
    activity = [
        {
            "action": f"Order {o.get('orderNumber')} {o.get('status')}",
            "time": (o.get("orderDate") or "")[:10],
            "value": f"${o.get('totalPrice') or 0:,}",
        }
        for o in recent
    ]

    return {
        "revenue": {
            "total": revenue,
            "change": percent_change(revenue, previous_revenue),
        },
        "orders": {
            "total": len(current_orders),
            "change": percent_change(len(current_orders), len(previous_orders)),
            "pending": status_counts.get("pending", 0),
            "completed": status_counts.get("delivered", 0),
            "cancelled": status_counts.get("cancelled", 0),
        },
        "customers": {"total": total_users},
        "products": {"total": total_products},
        "topProducts": top_products_by_revenue(current_orders),
        "recentActivity": activity,
    }
