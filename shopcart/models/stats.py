"""
Admin dashboard statistics.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

STATS_QUERY = """{
  "totalOrders": count(*[_type == "order"]),
  "totalRevenue": *[_type == "order" && defined(totalPrice)].totalPrice,
  "totalProducts": count(*[_type == "product"]),
  "recentOrders": count(*[_type == "order" && dateTime(orderDate) >= dateTime($currentMonthStart)]),
  "recentRevenue": *[_type == "order" && dateTime(orderDate) >= dateTime($currentMonthStart) && defined(totalPrice)].totalPrice,
  "lastMonthOrders": count(*[_type == "order" && dateTime(orderDate) >= dateTime($lastMonthStart) && dateTime(orderDate) <= dateTime($lastMonthEnd)]),
  "lastMonthRevenue": *[_type == "order" && dateTime(orderDate) >= dateTime($lastMonthStart) && dateTime(orderDate) <= dateTime($lastMonthEnd) && defined(totalPrice)].totalPrice,
  "cardPayments": *[_type == "order" && paymentMethod == "card" && paymentStatus == "paid"].totalPrice,
  "codPaid": *[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "paid"].totalPrice,
  "codPending": *[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "pending"].totalPrice,
  "totalCardOrders": count(*[_type == "order" && paymentMethod == "card"]),
  "totalCodOrders": count(*[_type == "order" && paymentMethod == "cash_on_delivery"]),
  "codPendingOrders": count(*[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "pending"])
}"""


def month_ranges(now: Optional[datetime] = None) -> Dict[str, str]:
    """Current month start plus last month's first and last day, as ISO strings."""
    now = now or datetime.utcnow()
    current_month_start = datetime(now.year, now.month, 1)
    last_month_end = current_month_start - timedelta(days=1)
    last_month_start = datetime(last_month_end.year, last_month_end.month, 1)
    return {
        "currentMonthStart": current_month_start.isoformat() + "Z",
        "lastMonthStart": last_month_start.isoformat() + "Z",
        "lastMonthEnd": last_month_end.isoformat() + "Z",
    }


def sum_values(values: Optional[Iterable[Any]]) -> float:
    if not values:
        return 0
    return sum(v or 0 for v in values)


def percent_change(current: float, previous: float) -> float:
    """Month-over-month change, rounded to one decimal."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)


def build_admin_stats(raw: Dict[str, Any], total_users: int) -> Dict[str, Any]:
    """Shape the aggregate query result into the dashboard payload."""
    recent_revenue = sum_values(raw.get("recentRevenue"))
    last_month_revenue = sum_values(raw.get("lastMonthRevenue"))

    return {
        "totalRevenue": sum_values(raw.get("totalRevenue")),
        "totalOrders": raw.get("totalOrders") or 0,
        "totalUsers": total_users,
        "totalProducts": raw.get("totalProducts") or 0,
        "revenueChange": percent_change(recent_revenue, last_month_revenue),
        "ordersChange": percent_change(
            raw.get("recentOrders") or 0, raw.get("lastMonthOrders") or 0
        ),
        "paymentBreakdown": {
            "cardRevenue": round(sum_values(raw.get("cardPayments")), 2),
            "codPaidRevenue": round(sum_values(raw.get("codPaid")), 2),
            "codPendingRevenue": round(sum_values(raw.get("codPending")), 2),
            "totalCardOrders": raw.get("totalCardOrders") or 0,
            "totalCodOrders": raw.get("totalCodOrders") or 0,
            "codPendingOrders": raw.get("codPendingOrders") or 0,
        },
    }


ACCOUNTS_PAYMENT_STATS_QUERY = """{
  "totalCodRevenue": *[_type == "order" && paymentMethod == "cash_on_delivery" && defined(totalPrice)].totalPrice,
  "codPaidRevenue": *[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "paid" && defined(totalPrice)].totalPrice,
  "codPendingRevenue": *[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "pending" && defined(totalPrice)].totalPrice,
  "cardRevenue": *[_type == "order" && paymentMethod in ["card", "stripe"] && paymentStatus == "paid" && defined(totalPrice)].totalPrice,
  "totalCodOrders": count(*[_type == "order" && paymentMethod == "cash_on_delivery"]),
  "codPaidOrders": count(*[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "paid"]),
  "codPendingOrders": count(*[_type == "order" && paymentMethod == "cash_on_delivery" && paymentStatus == "pending"]),
  "cardOrders": count(*[_type == "order" && paymentMethod in ["card", "stripe"] && paymentStatus == "paid"])
}"""


def build_accounts_payment_stats(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Revenue sums and order counts split by cash on delivery and card."""
    stats: Dict[str, Any] = {}
    for key in ("totalCodRevenue", "codPaidRevenue", "codPendingRevenue", "cardRevenue"):
        stats[key] = round(sum_values(raw.get(key)), 2)
    for key in ("totalCodOrders", "codPaidOrders", "codPendingOrders", "cardOrders"):
        stats[key] = raw.get(key) or 0
    return stats
