from __future__ import annotations

import logging
import time
from typing import NoReturn

from shipwright.core.approvals.schemas import ApprovalRequest
from shipwright.core.approvals.service import ApprovalGate
from shipwright.core.clock import now_iso
from shipwright.core.config.settings import AgentConfig
from shipwright.core.errors import InvalidStateError, NotFoundError, UpstreamFailure
from shipwright.core.logging.context import log_context
from shipwright.core.notifications.notifier import TaskNotifier
from shipwright.core.outcomes.classifier import classify_error
from shipwright.core.outcomes.ledger import OutcomeLedger
from shipwright.core.tasks.schemas import Plan, Task, TaskResult, TaskStatus
from shipwright.core.tasks.store import TaskStore

from .generator import InsightSource, PlanGenerator, PlanningContext

PLAN_GENERATION_SKILL = "plan_generation"


class PlanWorkflow:
    """Turns a pending task into a plan awaiting human approval.

    The ``pending -> planning`` move is a compare-and-swap, so two concurrent
    callers for the same task cannot both reach the generator.
    """

    def __init__(
        self,
        task_store: TaskStore,
        approvals: ApprovalGate,
        generator: PlanGenerator,
        ledger: OutcomeLedger,
        notifier: TaskNotifier | None = None,
        config: AgentConfig | None = None,
        insight_source: InsightSource | None = None,
    ) -> None:
        self.task_store = task_store
        self.approvals = approvals
        self.generator = generator
        self.ledger = ledger
        self.notifier = notifier
        self.config = config or AgentConfig()
        self.insight_source = insight_source
        self.logger = logging.getLogger("shipwright.planning")

    def is_eligible(self, task: Task) -> bool:
        return (
            task.status == TaskStatus.PENDING
            and task.plan is None
            and not self.approvals.has_pending_request(task.id)
        )

    def generate_plan(self, task_id: str) -> Task:
        task = self.task_store.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        with log_context(task_id=task.id):
            if task.plan is not None or self.approvals.has_pending_request(task.id):
                raise InvalidStateError(
                    f"task {task.id} already has a plan or a pending approval",
                    current_status=task.status.value,
                )
            task = self.task_store.transition(task.id, {TaskStatus.PENDING}, TaskStatus.PLANNING)
            if task is None:
                raise NotFoundError("task", task_id)

            started = time.perf_counter()
            error: object | None = None
            plan: Plan | None = None
            try:
                result = self.generator.generate(task, self.build_context())
            except Exception as exc:
                error = exc
            else:
                if result.success and result.plan is not None:
                    plan = result.plan
                else:
                    error = result.error or "plan generator returned no plan"
            duration_ms = int((time.perf_counter() - started) * 1000)

            if plan is None:
                self._fail(task, error, duration_ms)

            plan = plan.model_copy(update={"task_id": task.id, "approved_at": None})
            task = self.task_store.transition(task.id, {TaskStatus.PLANNING}, TaskStatus.AWAITING_APPROVAL, plan=plan)
            if task is None:
                raise NotFoundError("task", task_id)
            self.ledger.record_success(
                "task",
                PLAN_GENERATION_SKILL,
                action_id=task.id,
                outcome={"plan_id": plan.id, "steps": len(plan.steps)},
                duration_ms=duration_ms,
            )
            self.logger.info(
                "plan_generated",
                extra={"extra_fields": {"plan_id": plan.id, "steps": len(plan.steps)}},
            )
            self._open_request(task, plan)
            return task

    def _fail(self, task: Task, error: object, duration_ms: int) -> NoReturn:
        classification = classify_error(error)
        self.ledger.record_failure("task", PLAN_GENERATION_SKILL, error, action_id=task.id, duration_ms=duration_ms)
        self.task_store.transition(
            task.id,
            {TaskStatus.PLANNING},
            TaskStatus.FAILED,
            result=TaskResult(
                success=False,
                error=classification.error_message,
                error_class=classification.error_class,
                completed_at=now_iso(),
            ),
        )
        self.logger.error(
            "plan_generation_failed",
            extra={"extra_fields": {"error_class": classification.error_class, "error": classification.error_message}},
        )
        raise UpstreamFailure(f"plan generation failed: {classification.error_message}", classification)

    def _open_request(self, task: Task, plan: Plan) -> ApprovalRequest | None:
        try:
            request = self.approvals.open_request(task, plan)
        except Exception as exc:
            self.logger.error("approval_request_failed", extra={"extra_fields": {"error": str(exc)}})
            return None
        if request is not None:
            self._notify(task, plan, request)
        return request

    def _notify(self, task: Task, plan: Plan, request: ApprovalRequest) -> None:
        if self.notifier is None or not (self.config.email_notifications and self.config.task_approval_emails):
            return
        try:
            self.notifier.notify_plan_ready(task, plan, request)
        except Exception as exc:
            self.logger.error(
                "approval_notification_failed",
                extra={"extra_fields": {"approval_id": request.id, "error": str(exc)}},
            )

    def heal_orphans(self) -> list[str]:
        """Recreate missing approval requests for tasks stuck awaiting approval."""
        healed: list[str] = []
        for task in self.task_store.get_awaiting_approval_tasks():
            with log_context(task_id=task.id):
                if task.plan is None:
                    self.logger.warning("awaiting_task_without_plan")
                    continue
                if self.approvals.has_pending_request(task.id):
                    continue
                if self._open_request(task, task.plan) is not None:
                    self.logger.warning("orphan_approval_recreated", extra={"extra_fields": {"plan_id": task.plan.id}})
                    healed.append(task.id)
        return healed

    def build_context(self) -> PlanningContext:
        insight: str | None = None
        if self.insight_source is not None:
            try:
                insight = self.insight_source.latest_insight()
            except Exception as exc:
                self.logger.warning("insight_unavailable", extra={"extra_fields": {"error": str(exc)}})
        return PlanningContext(
            goals=list(self.config.goals),
            completed_projects=[project.name for project in self.task_store.list_completed_projects()],
            insight=insight,
        )
