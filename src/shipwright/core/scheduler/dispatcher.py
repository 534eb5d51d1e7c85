from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field

from shipwright.core.clock import Clock, utc_now
from shipwright.core.config.settings import AgentConfig
from shipwright.core.dedup.guard import DedupGuard, content_key
from shipwright.core.errors import ShipwrightError, UpstreamFailure
from shipwright.core.execution.engine import ExecutionEngine
from shipwright.core.integrations.base import SocialPoster
from shipwright.core.logging.context import log_context
from shipwright.core.outcomes.classifier import classify_error
from shipwright.core.outcomes.ledger import OutcomeLedger
from shipwright.core.planning.workflow import PlanWorkflow
from shipwright.core.tasks.store import TaskStore

from .jobs import ScheduledJob

PLAN_JOB = "plan"
EXECUTE_JOB = "execute"


class TickReport(BaseModel):
    at: str
    planned: str | None = None
    executed: str | None = None
    healed: list[str] = Field(default_factory=list)
    jobs: dict[str, str] = Field(default_factory=dict)


class CronDispatcher:
    """Entry point for every scheduler tick.

    Planning and execution each advance at most one task per tick, oldest
    first. Calendar jobs run inside their hour window and are guarded by the
    dedup guard so a repeated tick cannot post twice in one UTC day.
    """

    def __init__(
        self,
        task_store: TaskStore,
        workflow: PlanWorkflow,
        engine: ExecutionEngine,
        dedup: DedupGuard,
        ledger: OutcomeLedger,
        jobs: list[ScheduledJob] | None = None,
        poster: SocialPoster | None = None,
        config: AgentConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.task_store = task_store
        self.workflow = workflow
        self.engine = engine
        self.dedup = dedup
        self.ledger = ledger
        self.jobs = {job.name: job for job in jobs or []}
        self.poster = poster
        self.config = config or AgentConfig()
        self.clock = clock or utc_now
        self.logger = logging.getLogger("shipwright.cron")

    def tick(self, now: datetime | None = None) -> TickReport:
        now = now or self.clock()
        report = TickReport(at=now.isoformat())
        self.logger.info("cron_tick", extra={"extra_fields": {"minute": now.minute, "hour": now.hour}})

        if now.minute % max(1, self.config.plan_interval_minutes) == 0:
            report.planned = self._guarded(PLAN_JOB, self.run_plan_generation)
            report.healed = self._guarded(PLAN_JOB, self.workflow.heal_orphans) or []
        if now.minute % max(1, self.config.execute_interval_minutes) == 0:
            report.executed = self._guarded(EXECUTE_JOB, self.run_execution)

        for job in self.jobs.values():
            if job.is_due(now, self.config.execute_interval_minutes):
                report.jobs[job.name] = self._guarded(job.name, lambda job=job: self.run_job(job, now)) or "error"
        return report

    def _guarded(self, name: str, fn):
        try:
            return fn()
        except Exception:
            self.logger.exception("cron_job_error", extra={"extra_fields": {"job": name}})
            return None

    def run_plan_generation(self) -> str | None:
        """Plan the oldest eligible pending task; returns its id."""
        eligible = [task for task in self.task_store.get_pending_tasks() if self.workflow.is_eligible(task)]
        if not eligible:
            self.logger.info("no_tasks_need_planning")
            return None

        task = eligible[0]
        try:
            self.workflow.generate_plan(task.id)
        except ShipwrightError as exc:
            self.logger.warning(
                "cron_plan_generation_failed",
                extra={"extra_fields": {"task_id": task.id, "error": str(exc)}},
            )
        return task.id

    def run_execution(self) -> str | None:
        """Execute the oldest approved or executing task; returns its id."""
        tasks = self.task_store.get_approved_tasks()
        if not tasks:
            return None

        task = tasks[0]
        try:
            self.engine.execute(task.id)
        except ShipwrightError as exc:
            self.logger.warning(
                "cron_execution_failed",
                extra={"extra_fields": {"task_id": task.id, "error": str(exc)}},
            )
        return task.id

    def run_job(self, job: ScheduledJob, now: datetime | None = None) -> str:
        now = now or self.clock()
        with log_context(job_id=job.name):
            if self.dedup.has_posted_today(job.name):
                self.logger.info("scheduled_job_already_posted")
                return "skipped"
            text = job.compose(now)
            if not text:
                self.logger.info("scheduled_job_nothing_to_post")
                return "empty"
            text_key = content_key(text)
            if self.dedup.has_posted_today(text_key):
                self.logger.info("scheduled_job_duplicate_content")
                return "skipped"
            if self.poster is None:
                self.logger.warning("scheduled_job_no_poster")
                return "no_poster"

            try:
                with self.ledger.track("cron", job.name, context={"day": now.date().isoformat()}) as tracker:
                    output = self.poster.post(text, correlation_id=f"{job.name}:{now.date().isoformat()}")
                    tracker.set(url=output.url)
            except Exception as exc:
                classification = classify_error(exc)
                raise UpstreamFailure(f"{job.name} post failed: {classification.error_message}", classification) from exc
            reference = output.url or str(output.data.get("id") or "") or None
            self.dedup.record_daily_post(job.name, correlation_id=reference)
            self.dedup.record_daily_post(text_key, correlation_id=reference)
            self.logger.info("scheduled_job_posted", extra={"extra_fields": {"url": output.url}})
            return "posted"

    def trigger(self, job_name: str | None = None, now: datetime | None = None) -> TickReport:
        """Run a tick, or one named job regardless of its schedule."""
        now = now or self.clock()
        if job_name is None:
            return self.tick(now)

        report = TickReport(at=now.isoformat())
        if job_name == PLAN_JOB:
            report.planned = self.run_plan_generation()
            report.healed = self.workflow.heal_orphans()
        elif job_name == EXECUTE_JOB:
            report.executed = self.run_execution()
        elif job_name in self.jobs:
            report.jobs[job_name] = self.run_job(self.jobs[job_name], now)
        else:
            raise ValueError(f"unknown cron job: {job_name}")
        return report

    def job_names(self) -> list[str]:
        return [PLAN_JOB, EXECUTE_JOB, *self.jobs]
