"""
Business rules: points, status labels, admin checks, employee roles, ratings and stats.
"""

from .points import (
    PointsCalculation,
    PointsPolicy,
    calculate_loyalty_points,
    calculate_points_update,
    calculate_reward_points,
)
from .order_status import (
    FulfillmentStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    can_pay,
    is_order_paid,
)

__all__ = [
    "PointsCalculation",
    "PointsPolicy",
    "calculate_loyalty_points",
    "calculate_points_update",
    "calculate_reward_points",
    "FulfillmentStatus",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "can_pay",
    "is_order_paid",
]
