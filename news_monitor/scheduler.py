"""Named recurring jobs on top of APScheduler."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Union

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .models import JobStatus

logger = logging.getLogger(__name__)

JobCallback = Callable[[], object]


@dataclass(frozen=True, slots=True)
class IntervalMinutes:
    minutes: int

    def __post_init__(self) -> None:
        if isinstance(self.minutes, bool) or not isinstance(self.minutes, int) or self.minutes < 1:
            raise ValueError(f"Interval must be a positive number of minutes, got {self.minutes!r}")

    def describe(self) -> str:
        return f"every {self.minutes} minute(s)"


@dataclass(frozen=True, slots=True)
class CronExpression:
    expression: str

    def __post_init__(self) -> None:
        if not self.expression or not self.expression.strip():
            raise ValueError("Cron expression must not be empty")

    def describe(self) -> str:
        return f"cron '{self.expression}'"


Trigger = Union[IntervalMinutes, CronExpression]


def parse_trigger(value: Union[Trigger, int, str]) -> Trigger:
    """Turn an int (minutes), a digit string or a crontab string into a trigger."""
    if isinstance(value, (IntervalMinutes, CronExpression)):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return IntervalMinutes(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return IntervalMinutes(int(stripped))
        return CronExpression(stripped)
    raise ValueError(f"Unsupported trigger: {value!r}")


class _ScheduledJob:
    def __init__(self, name: str, trigger: Trigger, callback: JobCallback, guard: threading.Lock) -> None:
        self.name = name
        self.trigger = trigger
        self.callback = callback
        self.runs = 0
        self.skipped = 0
        self.active = True
        self._guard = guard

    @property
    def executing(self) -> bool:
        return self._guard.locked()

    def record_skip(self) -> None:
        self.skipped += 1
        logger.warning("Skipping run of job '%s': previous run still in progress", self.name)

    def fire(self) -> bool:
        if not self._guard.acquire(blocking=False):
            self.record_skip()
            return False
        started = time.monotonic()
        try:
            self.runs += 1
            logger.debug("Starting scheduled job: %s", self.name)
            try:
                self.callback()
            except Exception:
                logger.exception(
                    "Error in scheduled job: %s (after %.2fs)", self.name, time.monotonic() - started
                )
            else:
                logger.debug("Completed scheduled job: %s in %.2fs", self.name, time.monotonic() - started)
        finally:
            self._guard.release()
        return True


class JobScheduler:
    """Runs named jobs on an interval or cron schedule, never overlapping a job with itself.

    A fire that arrives while the same job is still executing is skipped and
    counted; it is not queued.
    """

    def __init__(self, timezone_name: str = "Asia/Jakarta", scheduler: Optional[BaseScheduler] = None) -> None:
        self.timezone_name = timezone_name
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone_name)
        self._jobs: Dict[str, _ScheduledJob] = {}
        self._guards: Dict[str, threading.Lock] = {}
        self._lock = threading.RLock()
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)

    def schedule_job(
        self,
        name: str,
        trigger: Union[Trigger, int, str],
        callback: JobCallback,
        run_immediately: bool = False,
    ) -> None:
        parsed = parse_trigger(trigger)
        aps_trigger = self._build_trigger(parsed)
        with self._lock:
            if name in self._jobs:
                logger.warning("Replacing existing job: %s", name)
                self.stop_job(name)
            self._ensure_started()
            # one guard per name, shared across replacement, so a new job skips while the old callback runs
            guard = self._guards.setdefault(name, threading.Lock())
            job = _ScheduledJob(name, parsed, callback, guard)
            options = {}
            if run_immediately:
                options["next_run_time"] = datetime.now(timezone.utc)
            self._scheduler.add_job(
                job.fire,
                aps_trigger,
                id=name,
                name=name,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=60,
                replace_existing=True,
                **options,
            )
            self._jobs[name] = job
        logger.info(
            "Scheduled job '%s' %s (run immediately: %s)", name, parsed.describe(), run_immediately
        )

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        job = self._jobs.get(event.job_id)
        if job is not None:
            job.record_skip()

    def _build_trigger(self, trigger: Trigger):
        if isinstance(trigger, IntervalMinutes):
            return IntervalTrigger(minutes=trigger.minutes, timezone=self.timezone_name)
        return CronTrigger.from_crontab(trigger.expression, timezone=self.timezone_name)

    def _ensure_started(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()

    def stop_job(self, name: str) -> bool:
        with self._lock:
            job = self._jobs.pop(name, None)
            if job is None:
                logger.warning("Job not found: %s", name)
                return False
            job.active = False
            try:
                self._scheduler.remove_job(name)
            except JobLookupError:
                logger.debug("Job %s was already removed from the scheduler", name)
        logger.info("Stopped job: %s", name)
        return True

    def stop_all_jobs(self) -> None:
        with self._lock:
            names = list(self._jobs)
            logger.info("Stopping all %d scheduled jobs", len(names))
            for name in names:
                self.stop_job(name)

    def shutdown(self, wait: bool = False) -> None:
        self.stop_all_jobs()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        logger.info("Scheduler shut down")

    def run_job_now(self, name: str) -> bool:
        """Run a job's callback in the calling thread, honoring the overlap guard."""
        with self._lock:
            job = self._jobs.get(name)
        if job is None:
            logger.warning("Job not found: %s", name)
            return False
        return job.fire()

    def is_job_running(self, name: str) -> bool:
        job = self._jobs.get(name)
        return bool(job and job.active)

    def is_job_executing(self, name: str) -> bool:
        job = self._jobs.get(name)
        return bool(job and job.executing)

    def get_next_run_time(self, name: str) -> Optional[datetime]:
        if name not in self._jobs:
            return None
        aps_job = self._scheduler.get_job(name)
        return getattr(aps_job, "next_run_time", None)

    def get_jobs_status(self) -> List[JobStatus]:
        with self._lock:
            jobs = list(self._jobs.values())
        return [
            JobStatus(
                name=job.name,
                running=job.active,
                next_run=self.get_next_run_time(job.name),
                runs=job.runs,
                skipped=job.skipped,
            )
            for job in jobs
        ]
