from __future__ import annotations

from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from shipwright.core.clock import now_iso

Chain = Literal["ethereum", "base", "monad", "solana"]
OutputType = Literal["repo", "deployment", "contract", "post", "file", "other"]


class TaskStatus(str, Enum):
    PENDING = "pending"
    PLANNING = "planning"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class StepAction(str, Enum):
    CODE = "code"
    DEPLOY = "deploy"
    CONTRACT = "contract"
    POST = "post"
    OTHER = "other"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})

# Forward-only lifecycle. Nothing ever returns to PENDING.
ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PLANNING}),
    TaskStatus.PLANNING: frozenset({TaskStatus.AWAITING_APPROVAL, TaskStatus.FAILED}),
    TaskStatus.AWAITING_APPROVAL: frozenset({TaskStatus.APPROVED, TaskStatus.FAILED}),
    TaskStatus.APPROVED: frozenset({TaskStatus.EXECUTING, TaskStatus.FAILED}),
    TaskStatus.EXECUTING: frozenset({TaskStatus.EXECUTING, TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class PlanStep(BaseModel):
    order: int
    action: StepAction
    description: str = ""
    details: dict[str, Any] = Field(default_factory=dict)


class Plan(BaseModel):
    id: str = Field(default_factory=lambda: f"plan_{uuid4().hex[:12]}")
    task_id: str
    summary: str
    steps: list[PlanStep] = Field(default_factory=list)
    estimated_time: str = ""
    risks: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso)
    approved_at: str | None = None

    def ordered_steps(self) -> list[PlanStep]:
        return sorted(self.steps, key=lambda step: step.order)


class TaskOutput(BaseModel):
    type: OutputType
    url: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class ExecutionProgress(BaseModel):
    last_completed_step: int = 0
    total_steps: int = 0
    started_at: str = Field(default_factory=now_iso)


class TaskResult(BaseModel):
    success: bool = False
    outputs: list[TaskOutput] = Field(default_factory=list)
    error: str | None = None
    error_class: str | None = None
    completed_at: str | None = None
    execution_progress: ExecutionProgress | None = None


class Task(BaseModel):
    id: str = Field(default_factory=lambda: f"task_{uuid4().hex[:16]}")
    title: str
    description: str
    chain: Chain | None = None
    status: TaskStatus = TaskStatus.PENDING
    plan: Plan | None = None
    result: TaskResult | None = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)


class CompletedProject(BaseModel):
    id: str
    name: str
    description: str
    chain: Chain | None = None
    urls: dict[str, str] = Field(default_factory=dict)
    completed_at: str = Field(default_factory=now_iso)
