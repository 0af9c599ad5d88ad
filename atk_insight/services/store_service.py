"""Persistence of the derived analytics and reorder rows.

Each item's rows are written with a single ``INSERT ... ON CONFLICT DO UPDATE``
per table, so a row always reflects one run entirely. Day-count sentinels are
applied here, at the storage boundary.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from atk_insight.core.constants import UNBOUNDED_DAYS
from atk_insight.core.dates import ensure_utc
from atk_insight.core.reorder_rules import ReorderPlan
from atk_insight.core.usage import UsageStats, turnover_rate
from atk_insight.models.item_analytics import ItemAnalytics
from atk_insight.models.reorder_recommendation import ReorderRecommendation
from atk_insight.models.stock_item import StockItem

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _or_sentinel(value: Optional[int]) -> int:
    return UNBOUNDED_DAYS if value is None else int(value)


def analytics_values(item_id: int, usage: UsageStats, health_status: str, current_stock: int, calculated_at: datetime) -> dict:
    return {
        "item_id": item_id,
        "days_since_last_out": _or_sentinel(usage.days_since_last_outflow),
        "total_out_30d": usage.total_out_30d,
        "total_out_90d": usage.total_out_90d,
        "avg_daily_usage": usage.avg_daily_usage,
        "turnover_rate": turnover_rate(usage.total_out_90d, current_stock),
        "health_status": health_status,
        "last_out_date": usage.last_outflow_at,
        "calculated_at": ensure_utc(calculated_at),
    }


def recommendation_values(item_id: int, plan: ReorderPlan, calculated_at: datetime) -> dict:
    return {
        "item_id": item_id,
        "current_stock": plan.current_stock,
        "avg_daily_usage": plan.avg_daily_usage,
        "reorder_point": plan.reorder_point,
        "suggested_qty": plan.suggested_qty,
        "days_until_reorder": _or_sentinel(plan.days_until_reorder),
        "priority": plan.priority,
        "estimated_stockout_date": plan.estimated_stockout_date,
        "calculated_at": ensure_utc(calculated_at),
    }


def supports_upsert(db) -> bool:
    return db.get_bind().dialect.name in _DIALECT_INSERTS


def _dialect_insert(db):
    dialect = db.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect]
    except KeyError as exc:
        raise RuntimeError("Upsert is not supported for dialect {}".format(dialect)) from exc


def upsert_row(db, model, values: dict) -> None:
    """Replace the row keyed by ``item_id`` in full."""
    insert = _dialect_insert(db)
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[model.item_id],
        set_={key: stmt.excluded[key] for key in values if key != "item_id"},
    )
    db.execute(stmt)


def write_item_results(db, item_id: int, analytics: dict, recommendation: dict) -> None:
    """Persist one item's results atomically; never touches ``stock_quantity``."""
    try:
        upsert_row(db, ItemAnalytics, analytics)
        upsert_row(db, ReorderRecommendation, recommendation)
        db.execute(
            update(StockItem)
            .where(StockItem.id == item_id)
            .values(
                reorder_point=recommendation["reorder_point"],
                suggested_order_qty=recommendation["suggested_qty"],
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _item_fields(item: StockItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "stock_quantity": item.stock_quantity,
        "min_stock": item.min_stock,
        "unit": item.unit,
        "price": item.price,
        "type": item.type,
    }


def latest_analytics(db, limit: Optional[int] = None) -> list[dict]:
    stmt = (
        select(ItemAnalytics, StockItem)
        .join(StockItem, StockItem.id == ItemAnalytics.item_id)
        .order_by(ItemAnalytics.days_since_last_out.desc(), ItemAnalytics.item_id)
        .execution_options(populate_existing=True)
    )
    if limit:
        stmt = stmt.limit(limit)

    results = []
    for analytics, item in db.execute(stmt).all():
        results.append(
            {
                "item_id": analytics.item_id,
                "days_since_last_out": analytics.days_since_last_out,
                "total_out_30d": analytics.total_out_30d,
                "total_out_90d": analytics.total_out_90d,
                "avg_daily_usage": analytics.avg_daily_usage,
                "turnover_rate": analytics.turnover_rate,
                "health_status": analytics.health_status,
                "last_out_date": ensure_utc(analytics.last_out_date),
                "calculated_at": ensure_utc(analytics.calculated_at),
                "item": _item_fields(item),
            }
        )
    return results


def latest_recommendations(db, limit: Optional[int] = None, priority: Optional[str] = None) -> list[dict]:
    stmt = (
        select(ReorderRecommendation, StockItem)
        .join(StockItem, StockItem.id == ReorderRecommendation.item_id)
        .order_by(ReorderRecommendation.days_until_reorder.asc(), ReorderRecommendation.item_id)
        .execution_options(populate_existing=True)
    )
    if priority:
        stmt = stmt.where(ReorderRecommendation.priority == priority)
    if limit:
        stmt = stmt.limit(limit)

    results = []
    for rec, item in db.execute(stmt).all():
        results.append(
            {
                "item_id": rec.item_id,
                "current_stock": rec.current_stock,
                "avg_daily_usage": rec.avg_daily_usage,
                "reorder_point": rec.reorder_point,
                "suggested_qty": rec.suggested_qty,
                "days_until_reorder": rec.days_until_reorder,
                "priority": rec.priority,
                "estimated_stockout_date": rec.estimated_stockout_date,
                "calculated_at": ensure_utc(rec.calculated_at),
                "item": _item_fields(item),
            }
        )
    return results


__all__ = [
    "analytics_values",
    "latest_analytics",
    "latest_recommendations",
    "recommendation_values",
    "supports_upsert",
    "upsert_row",
    "write_item_results",
]
