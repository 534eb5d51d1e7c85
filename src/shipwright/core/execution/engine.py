from __future__ import annotations

import logging

from shipwright.core.approvals.service import ApprovalGate
from shipwright.core.clock import now_iso
from shipwright.core.config.settings import AgentConfig
from shipwright.core.errors import InvalidStateError, NotFoundError, ShipwrightError
from shipwright.core.logging.context import log_context
from shipwright.core.notifications.notifier import TaskNotifier
from shipwright.core.outcomes.classifier import classify_error
from shipwright.core.outcomes.ledger import OutcomeLedger
from shipwright.core.outcomes.skills import action_type_for_step, map_step_to_skill
from shipwright.core.tasks.schemas import (
    CompletedProject,
    ExecutionProgress,
    PlanStep,
    Task,
    TaskOutput,
    TaskResult,
    TaskStatus,
)
from shipwright.core.tasks.store import TaskStore

from .handlers import StepDispatcher

_RUNNABLE = {TaskStatus.APPROVED, TaskStatus.EXECUTING}


class SkillSuppressed(ShipwrightError):
    def __init__(self, skill: str, succeeded: int, total: int) -> None:
        super().__init__(f"skill {skill} suppressed: {succeeded} of {total} recent attempts succeeded")
        self.skill = skill


class ExecutionEngine:
    """Runs an approved plan step by step.

    Progress is saved after every step so a task left ``executing`` by a
    crashed run resumes after its last completed step. The first failing
    step aborts the plan; outputs gathered before it are kept.
    """

    def __init__(
        self,
        task_store: TaskStore,
        approvals: ApprovalGate,
        dispatcher: StepDispatcher,
        ledger: OutcomeLedger,
        notifier: TaskNotifier | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        self.task_store = task_store
        self.approvals = approvals
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.notifier = notifier
        self.config = config or AgentConfig()
        self.logger = logging.getLogger("shipwright.execution")

    def execute(self, task_id: str) -> Task:
        task = self.task_store.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        with log_context(task_id=task.id, plan_id=task.plan.id if task.plan else None):
            if task.status not in _RUNNABLE:
                raise InvalidStateError(
                    f"task {task.id} is {task.status.value}, not approved",
                    current_status=task.status.value,
                )
            if task.plan is None:
                self.task_store.transition(
                    task.id,
                    _RUNNABLE,
                    TaskStatus.FAILED,
                    result=TaskResult(success=False, error="task has no plan", error_class="validation", completed_at=now_iso()),
                )
                self.logger.error("execution_without_plan")
                raise InvalidStateError(f"task {task.id} has no plan", current_status=task.status.value)

            steps = task.plan.ordered_steps()
            prior = task.result.execution_progress if task.status == TaskStatus.EXECUTING and task.result else None
            outputs: list[TaskOutput] = list(task.result.outputs) if prior is not None and task.result else []
            progress = ExecutionProgress(
                last_completed_step=prior.last_completed_step if prior else 0,
                total_steps=len(steps),
                started_at=prior.started_at if prior else now_iso(),
            )
            if prior is not None:
                self.logger.info("execution_resumed", extra={"extra_fields": {"after_step": progress.last_completed_step}})

            task = self._save(task.id, _RUNNABLE, TaskStatus.EXECUTING, outputs, progress)

            failure: Exception | None = None
            for step in steps:
                if step.order <= progress.last_completed_step:
                    continue
                try:
                    output = self._run_step(task, step)
                except Exception as exc:
                    failure = exc
                    self.logger.error(
                        "step_failed",
                        extra={"extra_fields": {"step": step.order, "action": step.action.value, "error": str(exc)}},
                    )
                    break
                outputs.append(output)
                progress = progress.model_copy(update={"last_completed_step": step.order})
                task = self._save(task.id, {TaskStatus.EXECUTING}, TaskStatus.EXECUTING, outputs, progress)

            if failure is None:
                task = self._complete(task, outputs, progress)
            else:
                task = self._fail(task, outputs, progress, failure)

            self._finish(task)
            return task

    def _run_step(self, task: Task, step: PlanStep) -> TaskOutput:
        skill = map_step_to_skill(step.action.value, step.details)
        self._check_suppressed(skill)
        context = {"plan_id": task.plan.id if task.plan else None, "step": step.order, "action": step.action.value}
        with self.ledger.track(action_type_for_step(step.action.value), skill, action_id=task.id, context=context) as tracker:
            output = self.dispatcher.dispatch(task, step)
            tracker.set(type=output.type, url=output.url)
        self.logger.info("step_completed", extra={"extra_fields": {"step": step.order, "skill": skill}})
        return output

    def _check_suppressed(self, skill: str) -> None:
        if not self.config.suppress_degraded_skills:
            return
        if not self.ledger.is_skill_degraded(
            skill,
            min_samples=self.config.degraded_min_samples,
            max_success_rate=self.config.degraded_success_rate,
            window_days=self.config.stats_window_days,
        ):
            return
        stats = self.ledger.get_skill_stats(skill, window_days=self.config.stats_window_days)
        raise SkillSuppressed(skill, stats.succeeded, stats.total)

    def _save(
        self,
        task_id: str,
        expected: set[TaskStatus],
        target: TaskStatus,
        outputs: list[TaskOutput],
        progress: ExecutionProgress,
        **result_fields,
    ) -> Task:
        result = TaskResult(
            success=result_fields.pop("success", False),
            outputs=list(outputs),
            execution_progress=progress,
            **result_fields,
        )
        task = self.task_store.transition(task_id, expected, target, result=result)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def _complete(self, task: Task, outputs: list[TaskOutput], progress: ExecutionProgress) -> Task:
        task = self._save(
            task.id,
            {TaskStatus.EXECUTING},
            TaskStatus.COMPLETED,
            outputs,
            progress,
            success=True,
            completed_at=now_iso(),
        )
        self.task_store.add_completed_project(
            CompletedProject(
                id=task.id,
                name=task.title,
                description=task.description,
                chain=task.chain,
                urls={output.type: output.url for output in outputs if output.url},
            )
        )
        self.logger.info("execution_completed", extra={"extra_fields": {"outputs": len(outputs)}})
        return task

    def _fail(self, task: Task, outputs: list[TaskOutput], progress: ExecutionProgress, failure: Exception) -> Task:
        classification = classify_error(failure)
        return self._save(
            task.id,
            {TaskStatus.EXECUTING},
            TaskStatus.FAILED,
            outputs,
            progress,
            error=classification.error_message,
            error_class=classification.error_class,
            completed_at=now_iso(),
        )

    def _finish(self, task: Task) -> None:
        try:
            self.approvals.mark_executed(task.id)
        except Exception as exc:
            self.logger.error("approval_mark_executed_failed", extra={"extra_fields": {"error": str(exc)}})

        if self.notifier is None or not self.config.email_notifications:
            return
        try:
            self.notifier.notify_execution_result(task)
        except Exception as exc:
            self.logger.error("execution_notification_failed", extra={"extra_fields": {"error": str(exc)}})
