from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, Index, Integer, String

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


class ReorderAlert(Base):
    __tablename__ = "reorder_alerts"

    id = Column(Integer, primary_key=True)
    alert_date = Column(Date, nullable=False)
    alert_type = Column(String, nullable=False)

    phone_number = Column(String, nullable=False)
    message = Column(String, nullable=False)
    item_count = Column(Integer, nullable=False)

    delivered = Column(Boolean, nullable=False)
    failure_reason = Column(String)

    created_at = Column(UTCDateTime(), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_reorder_alert_dedup", "alert_date", "alert_type", "phone_number", unique=True),
    )


__all__ = ["ReorderAlert"]
