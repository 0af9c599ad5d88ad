from sqlalchemy import Column, Date, Float, ForeignKey, Index, Integer, String

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


class ReorderRecommendation(Base):
    __tablename__ = "atk_reorder_recommendations"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("atk_items.id"), nullable=False, unique=True)

    current_stock = Column(Integer, nullable=False)
    avg_daily_usage = Column(Float, nullable=False)
    reorder_point = Column(Integer, nullable=False)
    suggested_qty = Column(Integer, nullable=False)
    days_until_reorder = Column(Integer, nullable=False)
    priority = Column(String(10), nullable=False)
    estimated_stockout_date = Column(Date)

    calculated_at = Column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("idx_reorder_days_until", "days_until_reorder"),
        Index("idx_reorder_priority", "priority"),
    )


__all__ = ["ReorderRecommendation"]
