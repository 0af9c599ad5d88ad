import argparse
import logging

from atk_insight.config import get_settings
from atk_insight.core.logging import setup_logging
from atk_insight.scheduler.daily_job import build_scheduler
from atk_insight.scheduler.job_scheduler import ensure_scheduler_schema

logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Run the daily reorder recompute scheduler.")
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Try today's run once and exit.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    settings = get_settings()

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled by SCHEDULER_ENABLED.")
        return

    ensure_scheduler_schema()
    scheduler = build_scheduler()

    if args.run_once:
        scheduler.run_once()
        return

    scheduler.run_forever()


if __name__ == "__main__":
    main()
