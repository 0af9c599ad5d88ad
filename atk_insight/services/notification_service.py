import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from atk_insight.config import get_settings
from atk_insight.core.dates import ensure_utc, utc_now
from atk_insight.database import SessionLocal
from atk_insight.models.reorder_alert import ReorderAlert
from atk_insight.services.store_service import latest_recommendations
from atk_insight.services.whatsapp_service import send_whatsapp

logger = logging.getLogger(__name__)

ALERT_TYPE_LOW_STOCK = "LOW-STOCK"
_MAX_DIGEST_ITEMS = 20


def alert_already_sent(db, alert_date, alert_type, phone):
    stmt = (
        select(ReorderAlert.id)
        .where(
            ReorderAlert.alert_date == alert_date,
            ReorderAlert.alert_type == alert_type,
            ReorderAlert.phone_number == phone,
        )
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def build_low_stock_message(recommendations: Sequence[dict], today) -> str:
    lines = []
    for rec in recommendations[:_MAX_DIGEST_ITEMS]:
        item = rec["item"]
        stockout = rec["estimated_stockout_date"]
        unit = item.get("unit")
        stock_label = "{} {}".format(rec["current_stock"], unit) if unit else str(rec["current_stock"])
        lines.append(
            "\u2022 *{}*\n"
            "  Stock: {} (min: {}, reorder point: {})\n"
            "  Suggested order: {}\n"
            "  Est. stockout: {}".format(
                item["name"],
                stock_label,
                item["min_stock"],
                rec["reorder_point"],
                rec["suggested_qty"],
                stockout.isoformat() if stockout else "-",
            )
        )

    remaining = len(recommendations) - _MAX_DIGEST_ITEMS
    if remaining > 0:
        lines.append("...and {} more item(s)".format(remaining))

    return (
        "\U0001F6A8 *ALERT: Low Stock ATK* ({})\n\n"
        "{}\n\n"
        "_Restock now to cover the supplier lead time._"
    ).format(today.isoformat(), "\n\n".join(lines))


def notify_urgent_reorders(
    *,
    session_factory=None,
    now: Optional[datetime] = None,
    recipients: Optional[Sequence[str]] = None,
    send_notifications: bool = True,
):
    """Send one digest of urgent recommendations per recipient per day."""
    settings = get_settings()
    session_factory = session_factory or SessionLocal
    today = (ensure_utc(now) if now is not None else utc_now()).date()
    phones = list(recipients) if recipients is not None else settings.alert_recipients()

    stats = {"items": 0, "alerts": 0, "delivered": 0, "skipped": 0}
    db = session_factory()
    try:
        urgent = latest_recommendations(db, priority="urgent")
        stats["items"] = len(urgent)
        if not urgent or not phones:
            return stats

        message = build_low_stock_message(urgent, today)
        for phone in phones:
            if alert_already_sent(db, today, ALERT_TYPE_LOW_STOCK, phone):
                stats["skipped"] += 1
                continue

            delivered = False
            failure_reason = None
            if send_notifications:
                try:
                    send_whatsapp(message, phone)
                    delivered = True
                except (RuntimeError, ValueError) as exc:
                    failure_reason = str(exc)
                    logger.warning("Low-stock digest to %s failed: %s", phone, exc)

            db.add(
                ReorderAlert(
                    alert_date=today,
                    alert_type=ALERT_TYPE_LOW_STOCK,
                    phone_number=phone,
                    message=message,
                    item_count=len(urgent),
                    delivered=delivered,
                    failure_reason=failure_reason,
                )
            )
            stats["alerts"] += 1
            if delivered:
                stats["delivered"] += 1

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()

    return stats
