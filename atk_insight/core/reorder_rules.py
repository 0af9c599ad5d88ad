"""Reorder point, safety stock and priority rules.

All quantities are whole units. Day counts that cannot be computed because
there is no measurable usage are ``None`` here; the 999 sentinel is applied
only when rows are serialized for storage.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from atk_insight.core.constants import (
    DEFAULT_LEAD_TIME_DAYS,
    PLANNED_MAX_DAYS,
    SERVICE_LEVEL_Z,
    SOON_MAX_DAYS,
    SUPPLY_HORIZON_DAYS,
)
from atk_insight.core.dates import ensure_utc

# Rounding guard so that e.g. 0.1 * 30 rounds up to 3, not 4.
_PRECISION = 9


def _ceil(value: float) -> int:
    return math.ceil(round(value, _PRECISION))


def _floor(value: float) -> int:
    return math.floor(round(value, _PRECISION))


@dataclass(frozen=True)
class ReorderPlan:
    current_stock: int
    avg_daily_usage: float
    lead_time_days: int
    safety_stock: int
    reorder_point: int
    suggested_qty: int
    days_until_reorder: Optional[int]
    priority: str
    estimated_stockout_date: Optional[date]


def resolve_lead_time(lead_time_days: Optional[int], default: int = DEFAULT_LEAD_TIME_DAYS) -> int:
    if lead_time_days is None or lead_time_days <= 0:
        return default
    return int(lead_time_days)


def safety_stock(avg_daily_usage: float, lead_time_days: int) -> int:
    return _ceil(SERVICE_LEVEL_Z * avg_daily_usage * math.sqrt(lead_time_days))


def reorder_point(avg_daily_usage: float, lead_time_days: int, safety: int) -> int:
    return _ceil(avg_daily_usage * lead_time_days + safety)


def days_until_reorder(current_stock: int, reorder_at: int, avg_daily_usage: float) -> Optional[int]:
    if avg_daily_usage <= 0:
        return None
    # Already at or past the reorder point collapses to 0; priority carries the overdue signal.
    return max(0, _floor((current_stock - reorder_at) / avg_daily_usage))


def suggested_order_qty(avg_daily_usage: float, min_stock: Optional[int]) -> int:
    return max(_ceil(avg_daily_usage * SUPPLY_HORIZON_DAYS), int(min_stock or 0))


def reorder_priority(current_stock: int, reorder_at: int, days_until: Optional[int]) -> str:
    if current_stock <= reorder_at or days_until == 0:
        return "urgent"
    if days_until is None:
        return "safe"
    if days_until <= SOON_MAX_DAYS:
        return "soon"
    if days_until <= PLANNED_MAX_DAYS:
        return "planned"
    return "safe"


def estimated_stockout_date(current_stock: int, avg_daily_usage: float, now: datetime) -> Optional[date]:
    if avg_daily_usage <= 0:
        return None
    days_left = max(0, _floor(current_stock / avg_daily_usage))
    return (ensure_utc(now) + timedelta(days=days_left)).date()


def plan_reorder(
    *,
    avg_daily_usage: float,
    current_stock: int,
    now: datetime,
    lead_time_days: Optional[int] = None,
    min_stock: Optional[int] = None,
    default_lead_time_days: int = DEFAULT_LEAD_TIME_DAYS,
) -> ReorderPlan:
    lead_time = resolve_lead_time(lead_time_days, default_lead_time_days)
    usage = max(0.0, float(avg_daily_usage or 0.0))
    stock = int(current_stock or 0)

    safety = safety_stock(usage, lead_time)
    reorder_at = reorder_point(usage, lead_time, safety)
    days_until = days_until_reorder(stock, reorder_at, usage)

    return ReorderPlan(
        current_stock=stock,
        avg_daily_usage=usage,
        lead_time_days=lead_time,
        safety_stock=safety,
        reorder_point=reorder_at,
        suggested_qty=suggested_order_qty(usage, min_stock),
        days_until_reorder=days_until,
        priority=reorder_priority(stock, reorder_at, days_until),
        estimated_stockout_date=estimated_stockout_date(stock, usage, now),
    )


__all__ = [
    "ReorderPlan",
    "days_until_reorder",
    "estimated_stockout_date",
    "plan_reorder",
    "reorder_point",
    "reorder_priority",
    "resolve_lead_time",
    "safety_stock",
    "suggested_order_qty",
]
