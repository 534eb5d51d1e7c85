from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from shipwright.core.models.llm_provider import LLMOutputError, LLMUnavailable, ShipwrightLLM
from shipwright.core.models.prompts import planner_system_prompt, planner_user_prompt
from shipwright.core.tasks.schemas import Plan, PlanStep, Task


class PlanningContext(BaseModel):
    goals: list[str] = Field(default_factory=list)
    completed_projects: list[str] = Field(default_factory=list)
    insight: str | None = None


class PlanGenerationResult(BaseModel):
    success: bool
    plan: Plan | None = None
    error: str | None = None


class PlanGenerator(Protocol):
    def generate(self, task: Task, context: PlanningContext) -> PlanGenerationResult: ...


class InsightSource(Protocol):
    def latest_insight(self) -> str | None: ...


class LLMPlanGenerator:
    def __init__(self, llm: ShipwrightLLM) -> None:
        self.llm = llm
        self.logger = logging.getLogger("shipwright.planning")

    def generate(self, task: Task, context: PlanningContext) -> PlanGenerationResult:
        prompt = planner_user_prompt(
            title=task.title,
            description=task.description,
            chain=task.chain,
            goals=context.goals,
            completed_projects=context.completed_projects,
            insight=context.insight,
        )
        try:
            payload = self.llm.complete_json(system=planner_system_prompt(), user=prompt)
            plan = plan_from_payload(task.id, payload)
        except (LLMUnavailable, LLMOutputError) as exc:
            return PlanGenerationResult(success=False, error=str(exc))
        except (ValidationError, ValueError, TypeError) as exc:
            return PlanGenerationResult(success=False, error=f"invalid plan: {exc}")
        return PlanGenerationResult(success=True, plan=plan)


def plan_from_payload(task_id: str, payload: dict) -> Plan:
    raw_steps = payload.get("steps")
    if not isinstance(raw_steps, list) or not raw_steps:
        raise ValueError("plan has no steps")

    steps: list[PlanStep] = []
    for index, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise ValueError(f"step {index + 1} is not an object")
        steps.append(
            PlanStep(
                order=int(raw.get("order") or index + 1),
                action=raw.get("action"),
                description=str(raw.get("description") or ""),
                details=raw.get("details") or {},
            )
        )

    orders = [step.order for step in steps]
    if len(set(orders)) != len(orders):
        raise ValueError("plan step orders must be unique")

    return Plan(
        task_id=task_id,
        summary=str(payload.get("summary") or ""),
        steps=sorted(steps, key=lambda step: step.order),
        estimated_time=str(payload.get("estimatedTime") or payload.get("estimated_time") or ""),
        risks=[str(item) for item in payload.get("risks") or []],
    )
