"""
TIPSTREAM - Scheduling Service
Background jobs with APScheduler: periodic match refresh and twice-daily
prediction pool regeneration, each with a one-off run shortly after boot.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from tipstream.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[Any]]

REFRESH_JOB_ID = "refresh_matches"
GENERATE_JOB_ID = "generate_predictions"
STARTUP_SUFFIX = "_startup"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    MISSED = "missed"


@dataclass
class ScheduledJob:
    """A recurring pipeline job and its run history."""
    job_id: str
    name: str
    func: JobFunc
    trigger: str  # "interval" or "cron"
    trigger_args: Dict[str, Any]
    startup_delay: Optional[float] = None

    last_run: Optional[datetime] = None
    last_status: JobStatus = JobStatus.PENDING
    run_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    durations_ms: List[float] = field(default_factory=list)

    def record(self, status: JobStatus, duration_ms: float, error: Optional[str] = None) -> None:
        self.last_run = datetime.now(timezone.utc)
        self.last_status = status
        self.run_count += 1
        self.durations_ms = (self.durations_ms + [duration_ms])[-20:]
        if status == JobStatus.FAILED:
            self.error_count += 1
            self.last_error = error

    @property
    def avg_duration_ms(self) -> float:
        if not self.durations_ms:
            return 0.0
        return sum(self.durations_ms) / len(self.durations_ms)

    def build_trigger(self, tz: str):
        if self.trigger == "interval":
            return IntervalTrigger(**self.trigger_args)
        return CronTrigger.from_crontab(self.trigger_args["crontab"], timezone=tz)


class SchedulerService:
    """
    Runs the match refresh and pool regeneration on their schedules.

    Job functions are wrapped by ``run_tracked`` so an exception is logged
    and recorded against the job instead of reaching APScheduler.

    Usage:
        scheduler = SchedulerService(refresh_func=store.refresh, generate_func=builder.run)
        await scheduler.initialize()
        await scheduler.start()
    """

    def __init__(
        self,
        refresh_func: JobFunc,
        generate_func: JobFunc,
        settings: Settings = default_settings,
    ):
        self.settings = settings
        self.enabled = settings.SCHEDULER_ENABLED
        self._refresh_func = refresh_func
        self._generate_func = generate_func
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False

    async def initialize(self) -> None:
        if not self.enabled:
            logger.info("[Scheduler] Disabled by SCHEDULER_ENABLED")
            return

        self._scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
            timezone=self.settings.SCHEDULER_TIMEZONE,
        )
        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

        self.register_job(ScheduledJob(
            job_id=REFRESH_JOB_ID,
            name="Refresh Match Cache",
            func=self._refresh_func,
            trigger="interval",
            trigger_args={"seconds": self.settings.MATCHES_REFRESH_INTERVAL},
            startup_delay=self.settings.MATCHES_STARTUP_DELAY,
        ))
        self.register_job(ScheduledJob(
            job_id=GENERATE_JOB_ID,
            name="Generate Prediction Pool",
            func=self._generate_func,
            trigger="cron",
            trigger_args={"crontab": self.settings.PREDICTION_CRON},
            startup_delay=self.settings.PREDICTION_STARTUP_DELAY,
        ))
        logger.info(f"[Scheduler] Initialized with {len(self._jobs)} jobs")

    async def start(self) -> None:
        if self._scheduler is None or self._running:
            return
        self._scheduler.start()
        self._running = True
        logger.info("[Scheduler] Started")

    async def stop(self) -> None:
        if self._scheduler is not None and self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("[Scheduler] Stopped")

    def register_job(self, job: ScheduledJob) -> None:
        """Add a recurring job and, if it has a startup delay, its one-off boot run."""
        if self._scheduler is None:
            logger.warning(f"[Scheduler] Not initialized, cannot register {job.job_id}")
            return

        self._jobs[job.job_id] = job
        self._scheduler.add_job(
            self.run_tracked,
            trigger=job.build_trigger(self.settings.SCHEDULER_TIMEZONE),
            args=[job.job_id],
            id=job.job_id,
            name=job.name,
            replace_existing=True,
        )

        if job.startup_delay is not None:
            self._scheduler.add_job(
                self.run_tracked,
                trigger=DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=job.startup_delay)),
                args=[job.job_id],
                id=job.job_id + STARTUP_SUFFIX,
                name=f"{job.name} (startup)",
                replace_existing=True,
            )

        logger.info(f"[Scheduler] Registered {job.job_id} ({job.trigger} {job.trigger_args})")

    async def run_tracked(self, job_id: str) -> None:
        """Run a job's function and record the outcome; never raises."""
        job = self._jobs[job_id]
        job.last_status = JobStatus.RUNNING
        started = time.monotonic()
        logger.info(f"[Scheduler] Running {job_id}...")
        try:
            await job.func()
        except Exception as e:
            job.record(JobStatus.FAILED, (time.monotonic() - started) * 1000, str(e))
            logger.error(f"[Scheduler] Job {job_id} failed: {e}", exc_info=True)
            return
        job.record(JobStatus.COMPLETED, (time.monotonic() - started) * 1000)
        logger.info(f"[Scheduler] Job {job_id} finished in {job.durations_ms[-1]:.0f}ms")

    def run_job_now(self, job_id: str) -> bool:
        """Move a job's next run to now."""
        if self._scheduler is None or job_id not in self._jobs:
            return False
        scheduled = self._scheduler.get_job(job_id)
        if scheduled is None:
            return False
        scheduled.modify(next_run_time=datetime.now(timezone.utc))
        return True

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        job = self._jobs.get(event.job_id.removesuffix(STARTUP_SUFFIX))
        if job is not None:
            job.last_status = JobStatus.MISSED
        logger.warning(f"[Scheduler] Missed run of {event.job_id}")

    def _next_run(self, job_id: str) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        scheduled = self._scheduler.get_job(job_id)
        # Pending jobs (scheduler not started) carry no next_run_time
        return getattr(scheduled, "next_run_time", None)

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        next_run = self._next_run(job_id)
        return {
            "job_id": job.job_id,
            "name": job.name,
            "trigger": job.trigger,
            "trigger_args": job.trigger_args,
            "last_run": job.last_run.isoformat() if job.last_run else None,
            "last_status": job.last_status.value,
            "next_run": next_run.isoformat() if next_run else None,
            "run_count": job.run_count,
            "error_count": job.error_count,
            "last_error": job.last_error,
            "avg_duration_ms": round(job.avg_duration_ms, 2),
        }

    def get_jobs(self) -> List[Dict[str, Any]]:
        return [self.get_job(job_id) for job_id in self._jobs]

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self._running,
            "jobs": len(self._jobs),
        }
