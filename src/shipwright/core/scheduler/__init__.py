from .dispatcher import CronDispatcher, TickReport
from .jobs import BUILDER_DIGEST, DAILY_SUMMARY, WEEKLY_RECAP, DigestSource, ScheduledJob, build_scheduled_jobs
from .scheduler import SchedulerService

__all__ = [
    "BUILDER_DIGEST",
    "DAILY_SUMMARY",
    "WEEKLY_RECAP",
    "CronDispatcher",
    "DigestSource",
    "ScheduledJob",
    "SchedulerService",
    "TickReport",
    "build_scheduled_jobs",
]
