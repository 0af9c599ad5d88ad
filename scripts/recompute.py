import argparse
import json
import sys

from atk_insight.core.exceptions import CatalogUnavailableError
from atk_insight.core.forecasting import FORECASTERS, get_forecaster
from atk_insight.core.logging import setup_logging
from atk_insight.scheduler.job_scheduler import ensure_scheduler_schema
from atk_insight.services.engine_service import recompute
from atk_insight.services.notification_service import notify_urgent_reorders


def parse_args():
    parser = argparse.ArgumentParser(description="Recompute item analytics and reorder recommendations.")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: RECOMPUTE_WORKERS).")
    parser.add_argument("--demand", choices=sorted(FORECASTERS), default="flat", help="Demand model.")
    parser.add_argument("--notify", action="store_true", help="Send the low-stock WhatsApp digest afterwards.")
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()
    ensure_scheduler_schema()

    try:
        summary = recompute(workers=args.workers, forecaster=get_forecaster(args.demand))
    except CatalogUnavailableError as exc:
        print("Recompute could not start: {}".format(exc), file=sys.stderr)
        return 1

    output = {"recompute": summary.as_dict()}
    if args.notify:
        output["notifications"] = notify_urgent_reorders()
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
