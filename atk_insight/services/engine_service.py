"""Batch recomputation of item analytics and reorder recommendations.

A run is a pure function of (active catalog snapshot, movement ledger, now).
Items are processed independently; a failure on one item is logged and the
item is left out of the summary, the rest of the batch continues.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from atk_insight.config import get_settings
from atk_insight.core.constants import (
    DEFAULT_LEAD_TIME_DAYS,
    HEALTH_STATUSES,
    PRIORITIES,
    USAGE_WINDOW_DAYS,
)
from atk_insight.core.dates import ensure_utc, utc_now
from atk_insight.core.exceptions import CatalogUnavailableError
from atk_insight.core.forecasting import DemandForecaster, FlatDemand
from atk_insight.core.health_rules import classify_health
from atk_insight.core.reorder_rules import plan_reorder
from atk_insight.core.usage import Outflow, summarize_usage, window_start
from atk_insight.database.session import SessionLocal
from atk_insight.services.ledger_service import CatalogEntry, MovementLedger
from atk_insight.services.store_service import (
    analytics_values,
    recommendation_values,
    supports_upsert,
    write_item_results,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemResult:
    item_id: int
    health_status: str
    priority: str


@dataclass
class RecomputeSummary:
    calculated_at: datetime
    health: dict = field(default_factory=dict)
    reorder: dict = field(default_factory=dict)
    failed_items: list = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_items)

    def as_dict(self) -> dict:
        return {
            "calculated_at": self.calculated_at.isoformat(),
            "health": dict(self.health),
            "reorder": dict(self.reorder),
            "failed": self.failed,
            "failed_items": list(self.failed_items),
        }


def compute_item(
    entry: CatalogEntry,
    outflows: Sequence[Outflow],
    last_outflow_at: Optional[datetime],
    now: datetime,
    *,
    forecaster: Optional[DemandForecaster] = None,
    default_lead_time_days: int = DEFAULT_LEAD_TIME_DAYS,
) -> tuple[dict, dict]:
    """Pure per-item pipeline: usage -> health -> reorder -> storable rows."""
    forecaster = forecaster or FlatDemand()
    usage = summarize_usage(outflows, now, last_outflow_at=last_outflow_at)
    health_status = classify_health(usage.days_since_last_outflow, entry.stock_quantity)
    plan = plan_reorder(
        avg_daily_usage=forecaster.daily_rate(usage, outflows),
        current_stock=entry.stock_quantity,
        now=now,
        lead_time_days=entry.lead_time_days,
        min_stock=entry.min_stock,
        default_lead_time_days=default_lead_time_days,
    )
    return (
        analytics_values(entry.item_id, usage, health_status, entry.stock_quantity, now),
        recommendation_values(entry.item_id, plan, now),
    )


def _run_item(session_factory, entry: CatalogEntry, now: datetime, forecaster, default_lead_time_days) -> ItemResult:
    db = session_factory()
    try:
        ledger = MovementLedger(db)
        outflows = ledger.outflows_since(entry.item_id, window_start(now, USAGE_WINDOW_DAYS))
        last_outflow_at = ledger.last_outflow_at(entry.item_id)
        analytics, recommendation = compute_item(
            entry,
            outflows,
            last_outflow_at,
            now,
            forecaster=forecaster,
            default_lead_time_days=default_lead_time_days,
        )
        write_item_results(db, entry.item_id, analytics, recommendation)
        return ItemResult(
            item_id=entry.item_id,
            health_status=analytics["health_status"],
            priority=recommendation["priority"],
        )
    finally:
        db.close()


def _safe_run_item(session_factory, entry, now, forecaster, default_lead_time_days) -> Optional[ItemResult]:
    try:
        return _run_item(session_factory, entry, now, forecaster, default_lead_time_days)
    except Exception:
        # Any per-item failure leaves that item out; the batch always completes.
        logger.exception("Recompute failed for item %s (%s); skipping.", entry.item_id, entry.name)
        return None


def load_catalog(session_factory) -> list[CatalogEntry]:
    db = session_factory()
    try:
        if not supports_upsert(db):
            raise CatalogUnavailableError(
                "Recommendation store does not support upserts on {}".format(db.get_bind().dialect.name)
            )
        return MovementLedger(db).active_items()
    except SQLAlchemyError as exc:
        raise CatalogUnavailableError("Unable to read the active item catalog") from exc
    finally:
        db.close()


def recompute(
    *,
    session_factory=None,
    now: Optional[datetime] = None,
    workers: Optional[int] = None,
    forecaster: Optional[DemandForecaster] = None,
) -> RecomputeSummary:
    """Recompute analytics and recommendations for every active item.

    Raises ``CatalogUnavailableError`` only when the batch cannot start.
    """
    settings = get_settings()
    session_factory = session_factory or SessionLocal
    now = ensure_utc(now) if now is not None else utc_now()
    workers = max(1, int(workers if workers is not None else settings.RECOMPUTE_WORKERS))
    forecaster = forecaster or FlatDemand()
    default_lead_time = settings.DEFAULT_LEAD_TIME_DAYS

    catalog = load_catalog(session_factory)
    logger.info(
        "Recompute started for %d active item(s) with %d worker(s), %s demand.",
        len(catalog),
        workers,
        forecaster.name,
    )

    if workers == 1 or len(catalog) <= 1:
        results = [
            _safe_run_item(session_factory, entry, now, forecaster, default_lead_time)
            for entry in catalog
        ]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="recompute") as pool:
            futures = [
                pool.submit(_safe_run_item, session_factory, entry, now, forecaster, default_lead_time)
                for entry in catalog
            ]
            results = [future.result() for future in futures]

    summary = RecomputeSummary(
        calculated_at=now,
        health={status: 0 for status in HEALTH_STATUSES},
        reorder={priority: 0 for priority in PRIORITIES},
    )
    for entry, result in zip(catalog, results):
        if result is None:
            summary.failed_items.append(entry.item_id)
            continue
        summary.health[result.health_status] += 1
        summary.reorder[result.priority] += 1

    completed = len(catalog) - summary.failed
    summary.health["total"] = completed
    summary.reorder["total"] = completed

    logger.info(
        "Recompute finished: %d item(s) written, %d failed. health=%s reorder=%s",
        completed,
        summary.failed,
        summary.health,
        summary.reorder,
    )
    return summary


__all__ = [
    "ItemResult",
    "RecomputeSummary",
    "compute_item",
    "load_catalog",
    "recompute",
]
