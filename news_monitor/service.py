"""Lifecycle of the long-running monitor: startup, recurring jobs and shutdown."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import signal
import sys
import threading
import _thread
from typing import Callable, Iterable, Optional

from .config import MonitorConfig
from .errors import ConfigurationError, NotificationError, StorageError
from .keywords import keyword_warnings, validate_keywords
from .notifier import DiscordNotifier
from .pipeline import NewsMonitor
from .providers import build_providers
from .providers.base import BaseProvider
from .scheduler import CronExpression, IntervalMinutes, JobScheduler
from .storage import ArticleStore

logger = logging.getLogger(__name__)

MONITOR_JOB = "news-monitor"
STATUS_JOB = "status-logger"
CLEANUP_JOB = "database-cleanup"


class MonitorService:
    """Owns the store, notifier, providers and scheduler for one process."""

    def __init__(
        self,
        config: MonitorConfig,
        store: Optional[ArticleStore] = None,
        notifier: Optional[DiscordNotifier] = None,
        providers: Optional[Iterable[BaseProvider]] = None,
        scheduler: Optional[JobScheduler] = None,
        monitor: Optional[NewsMonitor] = None,
    ) -> None:
        self.config = config
        self.store = store or ArticleStore(config.database_path)
        self.notifier = notifier or DiscordNotifier(config.webhook_url, rate_limit_rpm=config.rate_limit_rpm)
        if providers is None:
            providers = build_providers(config.sources, config.user_agent)
        self.providers = list(providers)
        self.scheduler = scheduler or JobScheduler(config.timezone)
        self.monitor = monitor or NewsMonitor(config, self.providers, self.store, self.notifier)

        self.started_at: Optional[datetime] = None
        self.exit_code = 0
        self._running = False
        self._closed = False
        self._stop_event = threading.Event()
        self._idle = threading.Event()
        self._idle.set()
        self._cycle_thread: Optional[int] = None
        self._terminated = threading.Event()
        self._lifecycle_lock = threading.Lock()

        self.validate_configuration()

    @property
    def is_running(self) -> bool:
        return self._running

    def validate_configuration(self) -> None:
        logger.info("Validating configuration")
        errors = validate_keywords(self.config.keywords)
        if errors:
            logger.error("Invalid keywords detected: %s", errors)
            raise ConfigurationError(f"Invalid keywords: {', '.join(errors)}")
        for warning in keyword_warnings(self.config.keywords):
            logger.warning(warning)
        logger.info(
            "Configuration validated: keywords=%s sources=%s interval=%dm",
            self.config.keywords,
            [provider.name for provider in self.providers],
            self.config.check_interval_minutes,
        )

    def start(self) -> None:
        if self._running:
            logger.warning("Monitor is already running")
            return
        logger.info("Starting news monitor")
        try:
            self.store.initialize()

            logger.info("Testing Discord connection")
            if not self.notifier.test_connection():
                raise NotificationError("Failed to connect to Discord webhook")

            self.scheduler.schedule_job(
                MONITOR_JOB, IntervalMinutes(self.config.check_interval_minutes), self.run_monitor_cycle
            )
            logger.info("Performing initial news check")
            self.scheduler.run_job_now(MONITOR_JOB)
            if self._stop_event.is_set():
                logger.info("Shutdown requested during the initial news check")
                return

            self._running = True
            self.started_at = datetime.now(timezone.utc)

            self.scheduler.schedule_job(
                STATUS_JOB, IntervalMinutes(self.config.status_interval_minutes), self.log_status
            )
            self.scheduler.schedule_job(CLEANUP_JOB, CronExpression(self.config.cleanup_cron), self.cleanup_database)
        except (KeyboardInterrupt, SystemExit):
            logger.info("Startup interrupted, shutting down")
            self.shutdown(grace_seconds=0)
            raise
        except Exception:
            logger.exception("Failed to start news monitor")
            self.shutdown(grace_seconds=0)
            raise
        logger.info(
            "News monitor started, next check at %s", self.scheduler.get_next_run_time(MONITOR_JOB)
        )

    def run_monitor_cycle(self) -> None:
        self._idle.clear()
        self._cycle_thread = threading.get_ident()
        try:
            self.monitor.run_cycle(self._stop_event)
        finally:
            self._cycle_thread = None
            self._idle.set()

    def log_status(self) -> None:
        status = self.status()
        logger.info(
            "Status report: processed=%s by_source=%s jobs=%s uptime=%.0fs",
            status["store"]["total"] if status["store"] else "n/a",
            status["store"]["by_source"] if status["store"] else {},
            [job["name"] for job in status["jobs"]],
            status["uptime_seconds"],
        )

    def cleanup_database(self) -> int:
        logger.info("Starting database cleanup")
        deleted = self.store.cleanup(self.config.retention_days)
        logger.info("Database cleanup completed, deleted %d old articles", deleted)
        return deleted

    def shutdown(self, grace_seconds: Optional[float] = None) -> None:
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
        grace = self.config.shutdown_grace_seconds if grace_seconds is None else grace_seconds
        if self._cycle_thread == threading.get_ident():
            # a signal handler interrupted the cycle on this thread; it cannot finish while we wait
            grace = 0
        logger.info("Shutting down news monitor")
        self._stop_event.set()
        try:
            self.scheduler.shutdown(wait=False)
            if not self._idle.wait(grace):
                logger.warning("Monitoring cycle still running after %.1fs grace period", grace)
            self.store.close()
        except Exception:
            logger.exception("Error during shutdown")
        finally:
            self._running = False
            self._terminated.set()
        logger.info("News monitor shutdown completed")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown has completed."""
        return self._terminated.wait(timeout)

    def status(self) -> dict:
        uptime = 0.0
        if self.started_at is not None:
            uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds()
        store_stats = None
        if self.store.is_open:
            try:
                stats = self.store.stats()
                store_stats = {"total": stats.total, "by_source": stats.by_source}
            except StorageError as exc:
                logger.error("Could not read store stats: %s", exc)
        report = self.monitor.last_report
        return {
            "running": self._running,
            "uptime_seconds": uptime,
            "next_check": _isoformat(self.scheduler.get_next_run_time(MONITOR_JOB)),
            "jobs": [
                {
                    "name": job.name,
                    "running": job.running,
                    "next_run": _isoformat(job.next_run),
                    "runs": job.runs,
                    "skipped": job.skipped,
                }
                for job in self.scheduler.get_jobs_status()
            ],
            "store": store_stats,
            "last_cycle": None
            if report is None
            else {
                "started_at": _isoformat(report.started_at),
                "duration_seconds": report.duration_seconds,
                "articles_by_source": report.articles_by_source,
                "matched": report.matched,
                "sent": report.sent,
                "saved": report.saved,
                "errors": len(report.errors),
                "cancelled": report.cancelled,
            },
        }

    def install_signal_handlers(self, exit_func: Callable[[int], None] = sys.exit) -> None:
        """Route SIGINT/SIGTERM and uncaught exceptions through a graceful shutdown."""

        def handle_signal(signum, frame) -> None:
            logger.info("Received %s, shutting down gracefully", signal.Signals(signum).name)
            self.shutdown()
            exit_func(self.exit_code)

        def handle_exception(exc_type, exc_value, exc_traceback) -> None:
            if issubclass(exc_type, KeyboardInterrupt):
                sys.__excepthook__(exc_type, exc_value, exc_traceback)
                return
            logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))
            self.exit_code = 1
            self.shutdown()

        def handle_thread_exception(args: threading.ExceptHookArgs) -> None:
            if args.exc_type is SystemExit:
                return
            logger.critical(
                "Uncaught exception in thread %s",
                args.thread.name if args.thread else "unknown",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
            self.exit_code = 1
            self.shutdown()
            _thread.interrupt_main()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)
        sys.excepthook = handle_exception
        threading.excepthook = handle_thread_exception


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
