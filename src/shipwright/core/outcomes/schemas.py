from __future__ import annotations

from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from shipwright.core.clock import now_iso

ActionType = Literal["task", "post", "trade", "pr", "proposal", "deploy", "cron", "analysis"]
ErrorClass = Literal["network", "auth", "rate_limit", "timeout", "validation", "external_service", "logic"]


class OutcomeRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    action_type: ActionType
    action_id: str | None = None
    skill: str
    success: bool
    error_class: ErrorClass | None = None
    error_message: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    outcome: dict[str, Any] = Field(default_factory=dict)
    duration_ms: int | None = None
    retry_count: int = 0
    created_at: str = Field(default_factory=now_iso)


class ErrorClassification(BaseModel):
    error_class: ErrorClass
    error_message: str
    is_retryable: bool
    suggested_delay_ms: int | None = None


class ErrorCount(BaseModel):
    error_class: ErrorClass
    count: int


class SkillStats(BaseModel):
    skill: str
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    success_rate: float = 0.0
    common_errors: list[ErrorCount] = Field(default_factory=list)
    avg_duration_ms: int = 0

    @property
    def most_common_error(self) -> ErrorClass | None:
        return self.common_errors[0].error_class if self.common_errors else None


class OutcomeSummary(BaseModel):
    window_days: int
    total_actions: int = 0
    success_rate: float = 0.0
    by_skill: dict[str, SkillStats] = Field(default_factory=dict)
    by_error_class: dict[str, int] = Field(default_factory=dict)
    top_failures: list[OutcomeRecord] = Field(default_factory=list)
