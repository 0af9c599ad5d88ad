from typing import Optional

from atk_insight.core.constants import HEALTHY_MAX_DAYS, SLOW_MAX_DAYS


def classify_health(days_since_last_outflow: Optional[int], current_stock: Optional[int]) -> str:
    """Map outflow recency and on-hand balance to healthy/slow/dead/unknown.

    ``None`` for ``days_since_last_outflow`` means the item never moved out.
    Stock that has never moved is dead, not unknown.
    """
    if current_stock is None:
        return "unknown"

    if days_since_last_outflow is None:
        # Never consumed: dead whether or not anything is on hand.
        return "dead"
    if days_since_last_outflow <= HEALTHY_MAX_DAYS:
        return "healthy"
    if days_since_last_outflow <= SLOW_MAX_DAYS:
        return "slow"
    return "dead"
