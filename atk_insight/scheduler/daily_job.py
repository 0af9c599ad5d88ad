import logging

from atk_insight.config import get_settings
from atk_insight.core.logging import setup_logging
from atk_insight.scheduler.job_scheduler import (
    DailyJobScheduler,
    SchedulerConfig,
    ensure_scheduler_schema,
    parse_time,
)
from atk_insight.services.engine_service import recompute
from atk_insight.services.notification_service import notify_urgent_reorders

logger = logging.getLogger(__name__)

JOB_NAME = "daily-reorder-recompute"


def run_daily_recompute(session_factory=None):
    settings = get_settings()
    summary = recompute(session_factory=session_factory)
    result = {"recompute": summary.as_dict()}
    if settings.LOW_STOCK_NOTIFY:
        result["notifications"] = notify_urgent_reorders(session_factory=session_factory)
    return result


def build_scheduler(session_factory=None) -> DailyJobScheduler:
    settings = get_settings()
    config = SchedulerConfig(
        job_name=JOB_NAME,
        run_after_time=parse_time(settings.SCHEDULER_RUN_AFTER),
        poll_seconds=settings.SCHEDULER_POLL_SECONDS,
        heartbeat_seconds=settings.SCHEDULER_HEARTBEAT_SECONDS,
        stale_seconds=settings.SCHEDULER_STALE_SECONDS,
        retry_seconds=settings.SCHEDULER_RETRY_SECONDS,
        max_retries=settings.SCHEDULER_MAX_RETRIES,
        timezone_mode=settings.SCHEDULER_TZ,
    )
    return DailyJobScheduler(
        config=config,
        job_func=lambda: run_daily_recompute(session_factory),
        session_factory=session_factory,
    )


if __name__ == "__main__":
    setup_logging()
    ensure_scheduler_schema()
    build_scheduler().run_once()
