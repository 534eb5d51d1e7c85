from __future__ import annotations

from datetime import timezone
from typing import Any, Callable

from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from pydantic import BaseModel

CRON_TICK_JOB_ID = "cron:tick"


class JobInfo(BaseModel):
    id: str
    next_run_time_iso: str | None = None
    trigger: str


class SchedulerService:
    """Wall-clock scheduler for the worker; jobs live in memory, state lives in the stores."""

    def __init__(self, test_mode: bool = False) -> None:
        self.test_mode = test_mode
        self.timezone = timezone.utc
        self.scheduler = BackgroundScheduler(
            jobstores={"default": MemoryJobStore()},
            timezone=self.timezone,
            job_defaults={"coalesce": True, "max_instances": 1},
        )
        self._started = False

    def start(self) -> None:
        if self.test_mode or self._started:
            return
        self.scheduler.start()
        self._started = True

    def shutdown(self) -> None:
        if self._started:
            self.scheduler.shutdown(wait=False)
            self._started = False

    def add_cron_tick(self, func: Callable[..., Any], every_minutes: int = 5) -> None:
        self.scheduler.add_job(
            func,
            trigger="cron",
            id=CRON_TICK_JOB_ID,
            minute=f"*/{max(1, every_minutes)}",
            timezone=self.timezone,
            replace_existing=True,
        )

    def list_jobs(self) -> list[JobInfo]:
        jobs: list[JobInfo] = []
        for job in self.scheduler.get_jobs():
            try:
                next_run_time = job.next_run_time
            except AttributeError:
                next_run_time = None
            jobs.append(
                JobInfo(
                    id=job.id,
                    next_run_time_iso=next_run_time.isoformat() if next_run_time else None,
                    trigger=str(job.trigger),
                )
            )
        return jobs

    def remove_job(self, job_id: str) -> None:
        self.scheduler.remove_job(job_id)
