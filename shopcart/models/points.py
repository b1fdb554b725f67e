"""
Reward and Loyalty Points
Tiered reward points per order and milestone loyalty points per completed orders.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from ..api.config import (
    APISettings,
    DEFAULT_LOYALTY_POINTS_AMOUNT,
    DEFAULT_LOYALTY_POINTS_ORDER_THRESHOLD,
    DEFAULT_REWARD_POINTS_AMOUNT,
    DEFAULT_REWARD_POINTS_THRESHOLD,
    get_settings,
)


@dataclass(frozen=True)
class PointsPolicy:
    """Thresholds driving the points calculator."""

    reward_threshold: float = DEFAULT_REWARD_POINTS_THRESHOLD
    reward_amount: int = DEFAULT_REWARD_POINTS_AMOUNT
    loyalty_order_threshold: int = DEFAULT_LOYALTY_POINTS_ORDER_THRESHOLD
    loyalty_amount: int = DEFAULT_LOYALTY_POINTS_AMOUNT

    @classmethod
    def from_settings(cls, settings: Optional[APISettings] = None) -> "PointsPolicy":
        settings = settings or get_settings()
        return cls(
            reward_threshold=settings.reward_points_threshold,
            reward_amount=settings.reward_points_amount,
            loyalty_order_threshold=settings.loyalty_points_order_threshold,
            loyalty_amount=settings.loyalty_points_amount,
        )


@dataclass
class PointsCalculation:
    """Result of applying one completed order to a user's points."""

    reward_points: int
    loyalty_points: int
    new_reward_points: int
    new_loyalty_points: int
    completed_orders: int
    messages: List[str] = field(default_factory=list)

    @property
    def points_earned(self) -> int:
        return self.new_reward_points + self.new_loyalty_points


def calculate_reward_points(
    order_total: float,
    threshold: Optional[float] = None,
    base_points: Optional[int] = None,
) -> int:
    """
    Reward points for a single order.

    Each full multiple of ``threshold`` in the total earns points; the first
    multiple earns ``base_points`` and every further one earns one less, never
    dropping below 1.

    >>> calculate_reward_points(9000, 3000, 5)
    12
    """
    policy = PointsPolicy.from_settings()
    threshold = threshold if threshold is not None else policy.reward_threshold
    base_points = base_points if base_points is not None else policy.reward_amount

    if order_total < threshold:
        return 0

    multiples = math.floor(order_total / threshold)
    return sum(max(base_points - i, 1) for i in range(multiples))


def calculate_loyalty_points(
    completed_orders: int,
    order_threshold: Optional[int] = None,
    points_amount: Optional[int] = None,
) -> int:
    """Total loyalty points owed for ``completed_orders`` (a step function)."""
    policy = PointsPolicy.from_settings()
    order_threshold = order_threshold if order_threshold is not None else policy.loyalty_order_threshold
    points_amount = points_amount if points_amount is not None else policy.loyalty_amount

    return (completed_orders // order_threshold) * points_amount


def calculate_points_update(
    order_total: float,
    current_completed_orders: int,
    current_reward_points: int = 0,
    current_loyalty_points: int = 0,
    policy: Optional[PointsPolicy] = None,
) -> PointsCalculation:
    """
    Apply one newly completed order to a user's running points.

    Args:
        order_total: Order total in store currency
        current_completed_orders: Completed orders before this one
        current_reward_points: Reward balance before this order
        current_loyalty_points: Loyalty balance before this order
        policy: Thresholds; read from settings when omitted

    Returns:
        PointsCalculation with the new balances and user-facing messages
    """
    policy = policy or PointsPolicy.from_settings()

    new_reward_points = calculate_reward_points(
        order_total, policy.reward_threshold, policy.reward_amount
    )

    completed_orders = current_completed_orders + 1
    # Only the milestone crossed by this order; bonuses already held are kept
    new_loyalty_points = calculate_loyalty_points(
        completed_orders, policy.loyalty_order_threshold, policy.loyalty_amount
    ) - calculate_loyalty_points(
        current_completed_orders, policy.loyalty_order_threshold, policy.loyalty_amount
    )

    messages = []
    if new_reward_points > 0:
        messages.append(
            f"Earned {new_reward_points} reward points for order over "
            f"${_format_amount(policy.reward_threshold)}!"
        )
    if new_loyalty_points > 0:
        messages.append(
            f"Earned {new_loyalty_points} loyalty points for completing "
            f"{completed_orders} orders!"
        )

    return PointsCalculation(
        reward_points=current_reward_points + new_reward_points,
        loyalty_points=current_loyalty_points + new_loyalty_points,
        new_reward_points=new_reward_points,
        new_loyalty_points=new_loyalty_points,
        completed_orders=completed_orders,
        messages=messages,
    )


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
