from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


class StockMovement(Base):
    __tablename__ = "atk_stock_history"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("atk_items.id"), nullable=False)

    type = Column(String(3), nullable=False)
    quantity = Column(Integer, nullable=False)
    notes = Column(String)

    created_at = Column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("type IN ('in', 'out')", name="ck_stock_history_type"),
        Index("idx_stock_history_item_type_created", "item_id", "type", "created_at"),
    )


__all__ = ["StockMovement"]
