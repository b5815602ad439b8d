"""Scheduling service module."""

from .scheduler_service import (
    GENERATE_JOB_ID,
    REFRESH_JOB_ID,
    JobStatus,
    ScheduledJob,
    SchedulerService,
)

__all__ = [
    "GENERATE_JOB_ID",
    "REFRESH_JOB_ID",
    "JobStatus",
    "ScheduledJob",
    "SchedulerService",
]
