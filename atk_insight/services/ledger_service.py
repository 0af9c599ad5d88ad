from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from atk_insight.core.constants import MOVEMENT_OUT
from atk_insight.core.dates import ensure_utc
from atk_insight.core.exceptions import LedgerDataError
from atk_insight.core.usage import Outflow
from atk_insight.models.stock_item import StockItem
from atk_insight.models.stock_movement import StockMovement


@dataclass(frozen=True)
class CatalogEntry:
    item_id: int
    name: str
    stock_quantity: int
    min_stock: int
    lead_time_days: Optional[int]
    price: float


class MovementLedger:
    """Read-only view over the stock movement log and the item balances."""

    def __init__(self, db):
        self._db = db

    def active_items(self) -> list[CatalogEntry]:
        rows = self._db.execute(
            select(
                StockItem.id,
                StockItem.name,
                StockItem.stock_quantity,
                StockItem.min_stock,
                StockItem.lead_time_days,
                StockItem.price,
            )
            .where(StockItem.is_active.is_(True))
            .order_by(StockItem.id)
        ).all()
        return [
            CatalogEntry(
                item_id=row.id,
                name=row.name,
                stock_quantity=int(row.stock_quantity or 0),
                min_stock=int(row.min_stock or 0),
                lead_time_days=row.lead_time_days,
                price=float(row.price or 0),
            )
            for row in rows
        ]

    def outflows_since(self, item_id: int, since: datetime) -> list[Outflow]:
        rows = self._db.execute(
            select(StockMovement.quantity, StockMovement.created_at)
            .where(
                StockMovement.item_id == item_id,
                StockMovement.type == MOVEMENT_OUT,
                StockMovement.created_at >= ensure_utc(since),
            )
            .order_by(StockMovement.created_at)
        ).all()

        outflows = []
        for quantity, created_at in rows:
            if created_at is None:
                raise LedgerDataError(item_id, "outflow without timestamp")
            if quantity is None or quantity <= 0:
                raise LedgerDataError(item_id, "non-positive outflow quantity {!r}".format(quantity))
            outflows.append(Outflow(quantity=int(quantity), created_at=ensure_utc(created_at)))
        return outflows

    def last_outflow_at(self, item_id: int) -> Optional[datetime]:
        value = self._db.execute(
            select(func.max(StockMovement.created_at)).where(
                StockMovement.item_id == item_id,
                StockMovement.type == MOVEMENT_OUT,
            )
        ).scalar()
        return ensure_utc(value)


__all__ = ["CatalogEntry", "MovementLedger"]
