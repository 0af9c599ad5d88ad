from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


class ItemAnalytics(Base):
    __tablename__ = "atk_item_analytics"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("atk_items.id"), nullable=False, unique=True)

    days_since_last_out = Column(Integer, nullable=False)
    total_out_30d = Column(Integer, nullable=False)
    total_out_90d = Column(Integer, nullable=False)
    avg_daily_usage = Column(Float, nullable=False)
    turnover_rate = Column(Float, nullable=False)
    health_status = Column(String(10), nullable=False)
    last_out_date = Column(UTCDateTime())

    calculated_at = Column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("idx_item_analytics_staleness", "days_since_last_out"),
    )


__all__ = ["ItemAnalytics"]
