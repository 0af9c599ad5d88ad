from typing import Optional

from sqlalchemy import select

from atk_insight.config import get_settings
from atk_insight.core.constants import HEALTH_STATUSES, UNBOUNDED_DAYS
from atk_insight.models.item_analytics import ItemAnalytics
from atk_insight.models.stock_item import StockItem

_TOP_LIMIT = 10


def format_idr(value):
    return "Rp{:,.0f}".format(value).replace(",", ".")


def _alerts_for_item(item, status, item_value, dead_stock_alert_value):
    alerts = []
    if item.stock_quantity <= item.min_stock:
        if item.stock_quantity == 0:
            alerts.append({"type": "danger", "message": "Out of stock!", "item_name": item.name})
        else:
            alerts.append(
                {
                    "type": "warning",
                    "message": "Stock ({}) at or below minimum ({})".format(item.stock_quantity, item.min_stock),
                    "item_name": item.name,
                }
            )
    if status == "dead" and item_value > dead_stock_alert_value:
        alerts.append(
            {
                "type": "warning",
                "message": "Dead stock worth {} - consider redistribution or disposal".format(format_idr(item_value)),
                "item_name": item.name,
            }
        )
    return alerts


def inventory_health_summary(db, dead_stock_alert_value: Optional[float] = None):
    """Dashboard roll-up of the latest analytics over the active catalog.

    Items without an analytics row yet are reported as ``unknown``.
    """
    if dead_stock_alert_value is None:
        dead_stock_alert_value = get_settings().DEAD_STOCK_ALERT_VALUE

    rows = db.execute(
        select(StockItem, ItemAnalytics.health_status, ItemAnalytics.days_since_last_out)
        .outerjoin(ItemAnalytics, ItemAnalytics.item_id == StockItem.id)
        .where(StockItem.is_active.is_(True))
        .order_by(StockItem.id)
    ).all()

    counts = {status: 0 for status in HEALTH_STATUSES}
    total_value = 0.0
    dead_stock_value = 0.0
    low_stock_count = 0
    slow_moving = []
    alerts = []

    for item, health_status, days_since_last_out in rows:
        status = health_status if health_status in counts else "unknown"
        counts[status] += 1

        item_value = (item.stock_quantity or 0) * (item.price or 0)
        total_value += item_value

        if status in ("dead", "slow"):
            if status == "dead":
                dead_stock_value += item_value
            default_days = UNBOUNDED_DAYS if status == "dead" else 0
            slow_moving.append(
                {
                    "id": item.id,
                    "name": item.name,
                    "stock": item.stock_quantity,
                    "value": item_value,
                    "days_since_last_out": days_since_last_out if days_since_last_out is not None else default_days,
                    "health_status": status,
                }
            )

        if item.stock_quantity <= item.min_stock:
            low_stock_count += 1
        alerts.extend(_alerts_for_item(item, status, item_value, dead_stock_alert_value))

    slow_moving.sort(key=lambda entry: entry["days_since_last_out"], reverse=True)

    return {
        "summary": {
            **counts,
            "total": len(rows),
            "total_value": total_value,
            "dead_stock_value": dead_stock_value,
            "low_stock_count": low_stock_count,
        },
        "slow_moving_items": slow_moving[:_TOP_LIMIT],
        "alerts": alerts[:_TOP_LIMIT],
    }
