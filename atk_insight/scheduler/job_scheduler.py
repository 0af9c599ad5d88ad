"""Once-per-day job runner backed by a ``job_logs`` lease row.

Several scheduler processes may poll the same database. The unique
(job_name, run_date) row decides which of them runs the day's job; a running
lease whose heartbeat has gone stale can be taken over, and a failed run is
retried after a linear backoff until ``max_retries`` attempts have been used.
"""
from __future__ import annotations

import json
import logging
import os
import socket
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from atk_insight.core.dates import ensure_utc, utc_now
from atk_insight.database import Base, SessionLocal, engine, ensure_sqlite_schema
from atk_insight.models import import_all_models
from atk_insight.models.job_log import JobLog

logger = logging.getLogger(__name__)

RUNNING = "running"
SUCCEEDED = "success"
FAILED = "failed"

_ERROR_LIMIT = 1000
_SUMMARY_LIMIT = 4000
_MIN_HEARTBEAT_SECONDS = 5


def ensure_scheduler_schema(bind=None) -> None:
    bind = bind if bind is not None else engine
    import_all_models()
    Base.metadata.create_all(bind=bind)
    ensure_sqlite_schema(bind)


def parse_time(value: str) -> time:
    """``HH:MM`` or ``HH:MM:SS`` as a ``datetime.time``."""
    try:
        parts = [int(part) for part in value.strip().split(":")]
    except ValueError as exc:
        raise ValueError("SCHEDULER_RUN_AFTER must be HH:MM or HH:MM:SS") from exc
    if len(parts) not in (2, 3):
        raise ValueError("SCHEDULER_RUN_AFTER must be HH:MM or HH:MM:SS")
    return time(*parts)


@dataclass(frozen=True)
class Lease:
    job_id: int
    job_name: str
    run_date: date
    attempt: int
    owner: str


class JobLeaseStore:
    def __init__(self, session_factory, *, stale_after: timedelta, retry_backoff: timedelta, max_retries: int) -> None:
        self._session_factory = session_factory
        self._stale_after = stale_after
        self._retry_backoff = retry_backoff
        self._max_retries = max_retries

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def acquire(self, job_name: str, run_date: date, owner: str) -> Optional[Lease]:
        """Claim the run for ``run_date``; ``None`` when it is done, held or not yet retryable."""
        now = utc_now()
        with self._session() as db:
            db.add(
                JobLog(
                    job_name=job_name,
                    run_date=run_date,
                    status=RUNNING,
                    attempt=1,
                    started_at=now,
                    last_heartbeat_at=now,
                    locked_by=owner,
                )
            )
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                return self._take_over(db, job_name, run_date, owner, now)

            job_id = db.execute(
                select(JobLog.id).where(JobLog.job_name == job_name, JobLog.run_date == run_date)
            ).scalar_one()
            return Lease(job_id, job_name, run_date, 1, owner)

    def _blocked_reason(self, row: JobLog, now: datetime) -> Optional[str]:
        if row.status == SUCCEEDED:
            return "already completed"
        if row.status == RUNNING:
            last_beat = ensure_utc(row.last_heartbeat_at)
            if last_beat is not None and now - last_beat <= self._stale_after:
                return "held by {}".format(row.locked_by)
        if row.status == FAILED:
            if row.attempt >= self._max_retries:
                return "out of retries"
            retry_at = ensure_utc(row.next_retry_at)
            if retry_at is not None and now < retry_at:
                return "retry not before {}".format(retry_at.isoformat())
        return None

    def _take_over(self, db, job_name: str, run_date: date, owner: str, now: datetime) -> Optional[Lease]:
        row = db.execute(
            select(JobLog).where(JobLog.job_name == job_name, JobLog.run_date == run_date)
        ).scalar_one()
        reason = self._blocked_reason(row, now)
        if reason:
            logger.debug("Job %s for %s not claimed: %s", job_name, run_date, reason)
            return None

        job_id, seen_status, seen_attempt = row.id, row.status, row.attempt
        # Compare-and-set against what we read; a concurrent claimant makes this a no-op.
        claimed = db.execute(
            update(JobLog)
            .where(JobLog.id == job_id, JobLog.status == seen_status, JobLog.attempt == seen_attempt)
            .values(
                status=RUNNING,
                attempt=seen_attempt + 1,
                started_at=now,
                last_heartbeat_at=now,
                finished_at=None,
                next_retry_at=None,
                error_message=None,
                locked_by=owner,
                updated_at=now,
            )
        )
        if claimed.rowcount != 1:
            db.rollback()
            return None
        db.commit()
        logger.info("Job %s for %s taken over from %s state by %s", job_name, run_date, seen_status, owner)
        return Lease(job_id, job_name, run_date, seen_attempt + 1, owner)

    def _update(self, job_id: int, **values) -> None:
        values.setdefault("updated_at", utc_now())
        with self._session() as db:
            db.execute(update(JobLog).where(JobLog.id == job_id).values(**values))
            db.commit()

    def heartbeat(self, lease: Lease) -> None:
        self._update(lease.job_id, last_heartbeat_at=utc_now())

    def succeed(self, lease: Lease, result=None) -> None:
        now = utc_now()
        summary = None
        if result is not None:
            summary = json.dumps(result, default=str)[:_SUMMARY_LIMIT]
        self._update(
            lease.job_id,
            status=SUCCEEDED,
            finished_at=now,
            last_heartbeat_at=now,
            error_message=None,
            next_retry_at=None,
            result_summary=summary,
        )

    def fail(self, lease: Lease, error: BaseException) -> None:
        now = utc_now()
        retry_at = None
        if lease.attempt < self._max_retries:
            retry_at = now + self._retry_backoff * lease.attempt
        self._update(
            lease.job_id,
            status=FAILED,
            finished_at=now,
            last_heartbeat_at=now,
            error_message="{}: {}".format(type(error).__name__, error)[:_ERROR_LIMIT],
            next_retry_at=retry_at,
        )


class _Heartbeat(threading.Thread):
    def __init__(self, store: JobLeaseStore, lease: Lease, interval_seconds: int) -> None:
        super().__init__(name="job-heartbeat", daemon=True)
        self._store = store
        self._lease = lease
        self._interval = max(_MIN_HEARTBEAT_SECONDS, int(interval_seconds))
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._store.heartbeat(self._lease)
            except SQLAlchemyError:
                logger.exception("Heartbeat failed for job %s", self._lease.job_id)

    def stop(self) -> None:
        self._stopped.set()
        self.join(timeout=self._interval + 1)


@dataclass
class SchedulerConfig:
    job_name: str
    run_after_time: time
    poll_seconds: int
    heartbeat_seconds: int
    stale_seconds: int
    retry_seconds: int
    max_retries: int
    timezone_mode: str = "local"


class DailyJobScheduler:
    def __init__(
        self,
        *,
        config: SchedulerConfig,
        job_func: Callable[[], object],
        session_factory=None,
        owner: Optional[str] = None,
    ) -> None:
        self._config = config
        self._job_func = job_func
        self._owner = owner or "{}:{}".format(socket.gethostname(), os.getpid())
        self._leases = JobLeaseStore(
            session_factory or SessionLocal,
            stale_after=timedelta(seconds=config.stale_seconds),
            retry_backoff=timedelta(seconds=config.retry_seconds),
            max_retries=config.max_retries,
        )
        self._stop_event = threading.Event()

    def _now(self) -> datetime:
        if self._config.timezone_mode.lower() == "utc":
            return datetime.now(timezone.utc)
        return datetime.now()

    def is_due(self, now: datetime) -> bool:
        return now.time() >= self._config.run_after_time

    def run_once(self, now: Optional[datetime] = None) -> bool:
        """Run today's job when due and unclaimed; ``True`` only for a successful run."""
        now = now or self._now()
        if not self.is_due(now):
            return False

        lease = self._leases.acquire(self._config.job_name, now.date(), self._owner)
        if lease is None:
            return False

        logger.info("Running %s for %s (attempt %d)", lease.job_name, lease.run_date, lease.attempt)
        heartbeat = _Heartbeat(self._leases, lease, self._config.heartbeat_seconds)
        heartbeat.start()
        try:
            result = self._job_func()
        except Exception as exc:
            logger.exception("Job %s failed for %s", lease.job_name, lease.run_date)
            self._leases.fail(lease, exc)
            return False
        finally:
            heartbeat.stop()

        self._leases.succeed(lease, result)
        logger.info("Job %s completed for %s", lease.job_name, lease.run_date)
        return True

    def run_forever(self) -> None:
        poll_seconds = max(1, int(self._config.poll_seconds))
        logger.info("Scheduler polling every %ss for job %s", poll_seconds, self._config.job_name)
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduler poll failed")
            self._stop_event.wait(poll_seconds)

    def stop(self) -> None:
        self._stop_event.set()


__all__ = [
    "DailyJobScheduler",
    "JobLeaseStore",
    "Lease",
    "SchedulerConfig",
    "ensure_scheduler_schema",
    "parse_time",
]
