"""Demand estimation strategies and the richer restock forecast.

The reorder calculator only needs a daily rate; ``DemandForecaster``
implementations supply it. ``build_restock_forecast`` adds the diagnostic
signals shown on the predictions view (trend, confidence band, month-end
spike, peak weekday) and is never persisted.
"""
from __future__ import annotations

import calendar
import math
import statistics
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from atk_insight.core.constants import RECENT_WINDOW_DAYS, USAGE_WINDOW_DAYS
from atk_insight.core.dates import ensure_utc
from atk_insight.core.usage import Outflow, UsageStats, window_start

TREND_THRESHOLD_PERCENT = 15.0
MONTH_END_DAYS = 7
MONTH_END_SPIKE_RATIO = 1.3
CONFIDENCE_FULL_SAMPLE = 20
CI_Z = 1.96

# Sunday-first, matching how the dashboards label weekdays.
_WEEKDAY_ORDER = (6, 0, 1, 2, 3, 4, 5)
_WEEKDAY_LABELS = {0: "Mon", 1: "Tue", 2: "Wed", 3: "Thu", 4: "Fri", 5: "Sat", 6: "Sun"}


class DemandForecaster(ABC):
    name = "base"

    @abstractmethod
    def daily_rate(self, usage: UsageStats, outflows: Sequence[Outflow]) -> float:
        """Average units consumed per day."""


class FlatDemand(DemandForecaster):
    """Flat 90-day average; no trend or seasonality."""

    name = "flat"

    def daily_rate(self, usage: UsageStats, outflows: Sequence[Outflow]) -> float:
        return usage.avg_daily_usage


class RecentDemand(DemandForecaster):
    """30-day average, more responsive to recent consumption."""

    name = "recent"

    def daily_rate(self, usage: UsageStats, outflows: Sequence[Outflow]) -> float:
        return usage.total_out_30d / RECENT_WINDOW_DAYS


FORECASTERS = {
    FlatDemand.name: FlatDemand,
    RecentDemand.name: RecentDemand,
}


def get_forecaster(name: Optional[str]) -> DemandForecaster:
    key = (name or FlatDemand.name).strip().lower()
    try:
        return FORECASTERS[key]()
    except KeyError as exc:
        raise ValueError("Unknown demand forecaster: {}".format(name)) from exc


@dataclass(frozen=True)
class Trend:
    direction: str
    percentage: float


@dataclass(frozen=True)
class RestockForecast:
    avg_daily_usage: float
    usage_lower: float
    usage_upper: float
    trend: str
    trend_percentage: float
    month_end_multiplier: float
    has_month_end_spike: bool
    peak_day: Optional[str]
    confidence: float
    days_until_min_stock: Optional[int]
    predicted_min_date: Optional[date]
    recommendation: str


def detect_trend(weekly_totals: Sequence[float]) -> Trend:
    """Compare the older half of the weekly totals against the newer half."""
    if len(weekly_totals) < 2:
        return Trend("stable", 0.0)

    middle = len(weekly_totals) // 2
    older = weekly_totals[:middle]
    newer = weekly_totals[middle:]
    older_avg = sum(older) / len(older)
    newer_avg = sum(newer) / len(newer)
    if older_avg == 0:
        return Trend("stable", 0.0)

    change = (newer_avg - older_avg) / older_avg * 100
    if change > TREND_THRESHOLD_PERCENT:
        return Trend("increasing", change)
    if change < -TREND_THRESHOLD_PERCENT:
        return Trend("decreasing", change)
    return Trend("stable", change)


def weekly_totals(outflows: Sequence[Outflow], now: datetime) -> list[int]:
    """Totals per active week, oldest week first."""
    now = ensure_utc(now)
    buckets: dict[int, int] = defaultdict(int)
    for outflow in outflows:
        weeks_ago = (now - ensure_utc(outflow.created_at)).days // 7
        buckets[weeks_ago] += outflow.quantity
    return [buckets[week] for week in sorted(buckets, reverse=True) if buckets[week] > 0]


def daily_totals(outflows: Sequence[Outflow]) -> list[int]:
    totals: dict[date, int] = defaultdict(int)
    for outflow in outflows:
        totals[ensure_utc(outflow.created_at).date()] += outflow.quantity
    return list(totals.values())


def is_month_end(value: datetime) -> bool:
    last_day = calendar.monthrange(value.year, value.month)[1]
    return value.day >= last_day - (MONTH_END_DAYS - 1)


def month_end_multiplier(outflows: Sequence[Outflow]) -> float:
    month_end = [o.quantity for o in outflows if is_month_end(ensure_utc(o.created_at))]
    normal = [o.quantity for o in outflows if not is_month_end(ensure_utc(o.created_at))]
    month_end_avg = sum(month_end) / len(month_end) if month_end else 0.0
    normal_avg = sum(normal) / len(normal) if normal else 0.0
    if normal_avg <= 0:
        return 1.0
    return month_end_avg / normal_avg


def peak_weekday(outflows: Sequence[Outflow]) -> Optional[str]:
    if not outflows:
        return None
    totals: dict[int, int] = defaultdict(int)
    counts: dict[int, int] = defaultdict(int)
    for outflow in outflows:
        weekday = ensure_utc(outflow.created_at).weekday()
        totals[weekday] += outflow.quantity
        counts[weekday] += 1

    best_day = None
    best_avg = -1.0
    for weekday in _WEEKDAY_ORDER:
        average = totals[weekday] / counts[weekday] if counts[weekday] else 0.0
        if average > best_avg:
            best_day, best_avg = weekday, average
    return _WEEKDAY_LABELS[best_day]


def usage_band(rate: float, per_day: Sequence[int]) -> tuple[float, float, float]:
    """95% confidence band around ``rate``; returns (lower, upper, stddev)."""
    stddev = statistics.pstdev(per_day) if per_day else 0.0
    margin = CI_Z * (stddev / math.sqrt(len(per_day) or 1))
    return max(0.0, rate - margin), rate + margin, stddev


def forecast_confidence(sample_size: int, rate: float, stddev: float) -> float:
    base = min(1.0, sample_size / CONFIDENCE_FULL_SAMPLE)
    if stddev <= 0:
        return base
    consistency = max(0.5, 1 - stddev / (rate or 1))
    return base * consistency


def build_restock_forecast(
    outflows: Sequence[Outflow],
    *,
    current_stock: int,
    min_stock: Optional[int],
    lead_time_days: int,
    now: datetime,
) -> RestockForecast:
    now = ensure_utc(now)
    since_90 = window_start(now, USAGE_WINDOW_DAYS)
    since_30 = window_start(now, RECENT_WINDOW_DAYS)
    window = sorted(
        (o for o in outflows if ensure_utc(o.created_at) >= since_90),
        key=lambda o: ensure_utc(o.created_at),
    )

    recent_total = sum(o.quantity for o in window if ensure_utc(o.created_at) >= since_30)
    rate = recent_total / RECENT_WINDOW_DAYS

    lower, upper, stddev = usage_band(rate, daily_totals(window))
    trend = detect_trend(weekly_totals(window, now))
    multiplier = month_end_multiplier(window)

    if rate > 0:
        # Already below minimum collapses to 0, as for days_until_reorder.
        days_until_min = max(0, math.floor((current_stock - (min_stock or 0)) / rate))
        predicted_date = (now + timedelta(days=days_until_min)).date()
    else:
        days_until_min = None
        predicted_date = None

    if days_until_min is None:
        recommendation = "safe"
    elif days_until_min <= lead_time_days:
        recommendation = "restock_now"
    elif days_until_min <= lead_time_days * 2:
        recommendation = "order_soon"
    else:
        recommendation = "safe"

    return RestockForecast(
        avg_daily_usage=rate,
        usage_lower=lower,
        usage_upper=upper,
        trend=trend.direction,
        trend_percentage=trend.percentage,
        month_end_multiplier=multiplier,
        has_month_end_spike=multiplier > MONTH_END_SPIKE_RATIO,
        peak_day=peak_weekday(window),
        confidence=forecast_confidence(len(window), rate, stddev),
        days_until_min_stock=days_until_min,
        predicted_min_date=predicted_date,
        recommendation=recommendation,
    )
