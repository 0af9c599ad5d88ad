from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Index, Integer, String

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


class StockItem(Base):
    """ATK catalog entry. ``stock_quantity`` is maintained by the ledger writer only."""

    __tablename__ = "atk_items"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="pcs")
    type = Column(String)

    stock_quantity = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=5)
    price = Column(Float, nullable=False, default=0)
    lead_time_days = Column(Integer)

    # Denormalized cache written back by the reorder engine.
    reorder_point = Column(Integer)
    suggested_order_qty = Column(Integer)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_atk_items_active", "is_active"),
    )


__all__ = ["StockItem"]
