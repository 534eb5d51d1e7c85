from __future__ import annotations

import logging
import time
from collections import Counter
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterator, Protocol

from shipwright.core.clock import Clock, parse_iso, utc_now
from shipwright.core.storage.jsonl import JsonlStore

from .classifier import classify_error
from .schemas import ActionType, ErrorCount, OutcomeRecord, OutcomeSummary, SkillStats

_MAX_ERROR_MESSAGE_CHARS = 2000
_SUMMARY_ROW_LIMIT = 1000
_TOP_FAILURES = 10


class OutcomeStore(Protocol):
    def append(self, record: OutcomeRecord) -> Any: ...

    def load_all(self) -> list[OutcomeRecord]: ...


class JsonlOutcomeStore(JsonlStore[OutcomeRecord]):
    def __init__(self, state_dir: Path, max_records: int = 20000) -> None:
        super().__init__(state_dir, "outcome_ledger.jsonl", OutcomeRecord)
        self.max_records = max_records
        self._appends_since_trim = 0

    def append(self, record: OutcomeRecord) -> OutcomeRecord:
        super().append(record)
        self._appends_since_trim += 1
        if self._appends_since_trim >= 100:
            self._appends_since_trim = 0
            self.trim(self.max_records)
        return record


class OutcomeTracker:
    """Mutable handle yielded by ``OutcomeLedger.track`` to attach outcome data."""

    def __init__(self) -> None:
        self.outcome: dict[str, Any] = {}
        self.retry_count = 0

    def set(self, **outcome: Any) -> None:
        self.outcome.update(outcome)


class OutcomeLedger:
    def __init__(self, store: OutcomeStore, clock: Clock | None = None) -> None:
        self.store = store
        self.clock = clock or utc_now
        self.logger = logging.getLogger("shipwright.outcomes")

    def record_outcome(self, record: OutcomeRecord) -> None:
        """Append a record. Storage failures are logged and never propagated."""
        try:
            if record.error_message and len(record.error_message) > _MAX_ERROR_MESSAGE_CHARS:
                record = record.model_copy(update={"error_message": record.error_message[:_MAX_ERROR_MESSAGE_CHARS]})
            self.store.append(record)
        except Exception as exc:
            self.logger.error(
                "outcome_record_failed",
                extra={"extra_fields": {"skill": record.skill, "error": str(exc)}},
            )

    def record_success(
        self,
        action_type: ActionType,
        skill: str,
        *,
        action_id: str | None = None,
        context: dict[str, Any] | None = None,
        outcome: dict[str, Any] | None = None,
        duration_ms: int | None = None,
    ) -> None:
        self.record_outcome(
            OutcomeRecord(
                action_type=action_type,
                action_id=action_id,
                skill=skill,
                success=True,
                context=context or {},
                outcome=outcome or {},
                duration_ms=duration_ms,
                created_at=self.clock().isoformat(),
            )
        )

    def record_failure(
        self,
        action_type: ActionType,
        skill: str,
        error: object,
        *,
        action_id: str | None = None,
        context: dict[str, Any] | None = None,
        duration_ms: int | None = None,
        retry_count: int = 0,
    ) -> None:
        classification = classify_error(error)
        self.record_outcome(
            OutcomeRecord(
                action_type=action_type,
                action_id=action_id,
                skill=skill,
                success=False,
                error_class=classification.error_class,
                error_message=classification.error_message,
                context=context or {},
                duration_ms=duration_ms,
                retry_count=retry_count,
                created_at=self.clock().isoformat(),
            )
        )

    @contextmanager
    def track(
        self,
        action_type: ActionType,
        skill: str,
        *,
        action_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> Iterator[OutcomeTracker]:
        """Record success or failure of the wrapped block; exceptions are re-raised."""
        tracker = OutcomeTracker()
        started = time.perf_counter()
        try:
            yield tracker
        except Exception as exc:
            self.record_failure(
                action_type,
                skill,
                exc,
                action_id=action_id,
                context=context,
                duration_ms=int((time.perf_counter() - started) * 1000),
                retry_count=tracker.retry_count,
            )
            raise
        self.record_success(
            action_type,
            skill,
            action_id=action_id,
            context=context,
            outcome=tracker.outcome,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )

    def _records_since(self, window_days: int) -> list[OutcomeRecord]:
        since = self.clock() - timedelta(days=window_days)
        rows: list[OutcomeRecord] = []
        for record in self.store.load_all():
            try:
                created = parse_iso(record.created_at)
            except ValueError:
                continue
            if created >= since:
                rows.append(record)
        return rows

    def get_skill_stats(self, skill: str, window_days: int = 30) -> SkillStats:
        try:
            rows = [record for record in self._records_since(window_days) if record.skill == skill]
        except Exception as exc:
            self.logger.error("outcome_stats_failed", extra={"extra_fields": {"skill": skill, "error": str(exc)}})
            return SkillStats(skill=skill)
        return _stats_for(skill, rows)

    def get_recent_failures(self, skill: str | None = None, limit: int = 20) -> list[OutcomeRecord]:
        if limit <= 0:
            return []
        try:
            records = self.store.load_all()
        except Exception as exc:
            self.logger.error("outcome_failures_failed", extra={"extra_fields": {"error": str(exc)}})
            return []
        failures = [record for record in records if not record.success and (skill is None or record.skill == skill)]
        failures.sort(key=lambda record: record.created_at, reverse=True)
        return failures[:limit]

    def get_outcome_summary(self, window_days: int = 7) -> OutcomeSummary:
        try:
            rows = self._records_since(window_days)
        except Exception as exc:
            self.logger.error("outcome_summary_failed", extra={"extra_fields": {"error": str(exc)}})
            return OutcomeSummary(window_days=window_days)

        rows.sort(key=lambda record: record.created_at, reverse=True)
        rows = rows[:_SUMMARY_ROW_LIMIT]
        total = len(rows)
        succeeded = sum(1 for record in rows if record.success)

        grouped: dict[str, list[OutcomeRecord]] = {}
        for record in rows:
            grouped.setdefault(record.skill, []).append(record)

        by_error_class = Counter(record.error_class for record in rows if record.error_class)
        return OutcomeSummary(
            window_days=window_days,
            total_actions=total,
            success_rate=succeeded / total if total else 0.0,
            by_skill={skill: _stats_for(skill, records) for skill, records in grouped.items()},
            by_error_class=dict(by_error_class),
            top_failures=[record for record in rows if not record.success][:_TOP_FAILURES],
        )

    def is_skill_degraded(self, skill: str, *, min_samples: int, max_success_rate: float, window_days: int) -> bool:
        stats = self.get_skill_stats(skill, window_days=window_days)
        return stats.total >= max(1, min_samples) and stats.success_rate < max_success_rate


def _stats_for(skill: str, rows: list[OutcomeRecord]) -> SkillStats:
    total = len(rows)
    succeeded = sum(1 for record in rows if record.success)
    errors = Counter(record.error_class for record in rows if record.error_class)
    durations = [record.duration_ms for record in rows if record.duration_ms is not None]
    return SkillStats(
        skill=skill,
        total=total,
        succeeded=succeeded,
        failed=total - succeeded,
        success_rate=succeeded / total if total else 0.0,
        common_errors=[ErrorCount(error_class=error_class, count=count) for error_class, count in errors.most_common()],
        avg_duration_ms=round(sum(durations) / len(durations)) if durations else 0,
    )
