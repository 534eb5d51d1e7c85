from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from shipwright.core.clock import parse_iso
from shipwright.core.config.settings import AgentConfig
from shipwright.core.outcomes.ledger import OutcomeLedger
from shipwright.core.tasks.schemas import CompletedProject
from shipwright.core.tasks.store import TaskStore

DAILY_SUMMARY = "daily_summary"
BUILDER_DIGEST = "builder_digest"
WEEKLY_RECAP = "weekly_recap"

_WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}


class DigestSource(Protocol):
    def build_digest(self, now: datetime) -> str | None: ...


@dataclass
class ScheduledJob:
    """A once-per-day post; ``name`` doubles as its dedup key."""

    name: str
    enabled: bool
    hour: int
    compose: Callable[[datetime], str | None]
    weekday: int | None = None

    def is_due(self, now: datetime, window_minutes: int) -> bool:
        if not self.enabled:
            return False
        if self.weekday is not None and now.weekday() != self.weekday:
            return False
        return now.hour == self.hour and now.minute < max(1, window_minutes)


def _shipped_since(task_store: TaskStore, since: datetime) -> list[CompletedProject]:
    shipped: list[CompletedProject] = []
    for project in task_store.list_completed_projects():
        try:
            if parse_iso(project.completed_at) >= since:
                shipped.append(project)
        except ValueError:
            continue
    return shipped


def compose_daily_summary(task_store: TaskStore, ledger: OutcomeLedger, now: datetime) -> str | None:
    shipped = _shipped_since(task_store, now - timedelta(days=1))
    summary = ledger.get_outcome_summary(window_days=1)
    if not shipped and summary.total_actions == 0:
        return None

    lines = [f"Daily report for {now.date().isoformat()}"]
    if shipped:
        lines.append(f"Shipped {len(shipped)}:")
        for project in shipped[:5]:
            url = next(iter(project.urls.values()), None)
            lines.append(f"- {project.name}" + (f" {url}" if url else ""))
    if summary.total_actions:
        lines.append(f"{summary.total_actions} actions, {round(summary.success_rate * 100)}% succeeded")
    return "\n".join(lines)


def compose_weekly_recap(task_store: TaskStore, ledger: OutcomeLedger, now: datetime) -> str | None:
    shipped = _shipped_since(task_store, now - timedelta(days=7))
    if not shipped:
        return None
    summary = ledger.get_outcome_summary(window_days=7)
    lines = [f"Week in review: shipped {len(shipped)} project{'s' if len(shipped) != 1 else ''}"]
    lines.extend(f"- {project.name}" for project in shipped[:10])
    busiest = sorted(summary.by_skill.values(), key=lambda stats: stats.total, reverse=True)[:3]
    if busiest:
        lines.append("Most used: " + ", ".join(f"{stats.skill} ({stats.total})" for stats in busiest))
    return "\n".join(lines)


def build_scheduled_jobs(
    config: AgentConfig,
    task_store: TaskStore,
    ledger: OutcomeLedger,
    digest_source: DigestSource | None = None,
) -> list[ScheduledJob]:
    jobs = [
        ScheduledJob(
            name=DAILY_SUMMARY,
            enabled=config.daily_summary_enabled,
            hour=config.daily_summary_hour,
            compose=lambda now: compose_daily_summary(task_store, ledger, now),
        ),
        ScheduledJob(
            name=WEEKLY_RECAP,
            enabled=config.weekly_recap_enabled,
            hour=config.weekly_recap_hour,
            weekday=_WEEKDAYS.get(config.weekly_recap_day.strip().casefold()[:3], 6),
            compose=lambda now: compose_weekly_recap(task_store, ledger, now),
        ),
    ]
    if digest_source is not None:
        jobs.append(
            ScheduledJob(
                name=BUILDER_DIGEST,
                enabled=config.daily_digest_enabled,
                hour=config.daily_digest_hour,
                compose=digest_source.build_digest,
            )
        )
    return jobs
