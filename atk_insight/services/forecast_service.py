import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from atk_insight.config import get_settings
from atk_insight.core.constants import USAGE_WINDOW_DAYS
from atk_insight.core.dates import ensure_utc, utc_now
from atk_insight.core.exceptions import LedgerDataError
from atk_insight.core.forecasting import build_restock_forecast
from atk_insight.core.reorder_rules import resolve_lead_time
from atk_insight.core.usage import window_start
from atk_insight.services.ledger_service import MovementLedger

logger = logging.getLogger(__name__)


def restock_forecasts(db, now: Optional[datetime] = None):
    """Per-item restock forecast for the active catalog, soonest first.

    Computed on demand and not persisted; items whose ledger cannot be read
    are skipped.
    """
    settings = get_settings()
    now = ensure_utc(now) if now is not None else utc_now()
    since = window_start(now, USAGE_WINDOW_DAYS)
    ledger = MovementLedger(db)

    forecasts = []
    for entry in ledger.active_items():
        try:
            outflows = ledger.outflows_since(entry.item_id, since)
        except (SQLAlchemyError, LedgerDataError):
            db.rollback()
            logger.exception("Forecast skipped for item %s", entry.item_id)
            continue

        forecast = build_restock_forecast(
            outflows,
            current_stock=entry.stock_quantity,
            min_stock=entry.min_stock,
            lead_time_days=resolve_lead_time(entry.lead_time_days, settings.DEFAULT_LEAD_TIME_DAYS),
            now=now,
        )
        forecasts.append(
            {
                "item_id": entry.item_id,
                "item_name": entry.name,
                "current_stock": entry.stock_quantity,
                "min_stock": entry.min_stock,
                **asdict(forecast),
            }
        )

    forecasts.sort(
        key=lambda row: (row["days_until_min_stock"] is None, row["days_until_min_stock"] or 0, row["item_id"])
    )
    return forecasts
