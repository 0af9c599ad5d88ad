from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from atk_insight.core.constants import RECENT_WINDOW_DAYS, USAGE_WINDOW_DAYS
from atk_insight.core.dates import ensure_utc


@dataclass(frozen=True)
class Outflow:
    quantity: int
    created_at: datetime


@dataclass(frozen=True)
class UsageStats:
    total_out_30d: int
    total_out_90d: int
    avg_daily_usage: float
    # None means no outflow has ever been recorded for the item.
    days_since_last_outflow: Optional[int]
    last_outflow_at: Optional[datetime]

    @property
    def has_outflow(self) -> bool:
        return self.last_outflow_at is not None


def window_start(now: datetime, days: int) -> datetime:
    return ensure_utc(now) - timedelta(days=days)


def days_between(earlier: datetime, later: datetime) -> int:
    delta = ensure_utc(later) - ensure_utc(earlier)
    return max(0, delta.days)


def summarize_usage(
    outflows: Iterable[Outflow],
    now: datetime,
    last_outflow_at: Optional[datetime] = None,
) -> UsageStats:
    """Aggregate the 90-day outflow window for one item.

    ``outflows`` is expected to hold the bounded window only; anything older is
    ignored. ``last_outflow_at`` carries the most recent outflow ever recorded,
    which may predate the window.
    """
    now = ensure_utc(now)
    since_90 = window_start(now, USAGE_WINDOW_DAYS)
    since_30 = window_start(now, RECENT_WINDOW_DAYS)

    total_30 = 0
    total_90 = 0
    latest = ensure_utc(last_outflow_at)
    for outflow in outflows:
        created_at = ensure_utc(outflow.created_at)
        if latest is None or created_at > latest:
            latest = created_at
        if created_at < since_90:
            continue
        total_90 += outflow.quantity
        if created_at >= since_30:
            total_30 += outflow.quantity

    days_since = days_between(latest, now) if latest is not None else None

    return UsageStats(
        total_out_30d=total_30,
        total_out_90d=total_90,
        avg_daily_usage=total_90 / USAGE_WINDOW_DAYS,
        days_since_last_outflow=days_since,
        last_outflow_at=latest,
    )


def turnover_rate(total_out_90d: int, current_stock: int) -> float:
    if not current_stock or current_stock <= 0:
        return 0.0
    return total_out_90d / current_stock


__all__ = [
    "Outflow",
    "UsageStats",
    "days_between",
    "summarize_usage",
    "turnover_rate",
    "window_start",
]
