from datetime import datetime, timezone

from sqlalchemy import Column, Date, Index, Integer, String, UniqueConstraint

from atk_insight.database.base import Base
from atk_insight.database.types import UTCDateTime


def _utcnow():
    return datetime.now(timezone.utc)


class JobLog(Base):
    __tablename__ = "job_logs"

    id = Column(Integer, primary_key=True)
    job_name = Column(String(80), nullable=False)
    run_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="running")
    attempt = Column(Integer, nullable=False, default=1)

    started_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
    finished_at = Column(UTCDateTime())
    last_heartbeat_at = Column(UTCDateTime())
    next_retry_at = Column(UTCDateTime())

    locked_by = Column(String(120))
    error_message = Column(String)
    result_summary = Column(String)

    updated_at = Column(UTCDateTime(), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("job_name", "run_date", name="uq_job_logs_name_date"),
        Index("idx_job_logs_status_retry", "status", "next_retry_at"),
    )


__all__ = ["JobLog"]
