from __future__ import annotations

import logging

from shipwright.core.clock import now_iso
from shipwright.core.errors import AlreadyResolvedError, InvalidStateError, NotFoundError
from shipwright.core.logging.context import log_context
from shipwright.core.tasks.schemas import Plan, Task, TaskStatus
from shipwright.core.tasks.store import TaskStore

from .schemas import ApprovalAction, ApprovalRequest
from .store import ApprovalStore


class ApprovalGate:
    """Human sign-off between plan generation and execution.

    Resolution is an idempotent state transition on the request, not a lock.
    """

    def __init__(self, store: ApprovalStore, task_store: TaskStore) -> None:
        self.store = store
        self.task_store = task_store
        self.logger = logging.getLogger("shipwright.approvals")

    def has_pending_request(self, task_id: str) -> bool:
        return bool(self.store.find_by_task(task_id, status="pending"))

    def open_request(self, task: Task, plan: Plan) -> ApprovalRequest | None:
        """Create the pending request for ``plan``; ``None`` if one already exists."""
        record = ApprovalRequest(id=plan.id, plan_id=plan.id, task_id=task.id, sent_at=now_iso(), status="pending")
        with log_context(task_id=task.id, approval_id=record.id):
            if not self.store.insert_if_absent(record):
                self.logger.warning("approval_request_exists")
                return None
            self.logger.info("approval_request_opened")
        return record

    def resolve(self, request_id: str, action: ApprovalAction) -> ApprovalRequest:
        if action not in ("approve", "reject"):
            raise ValueError(f"unknown approval action: {action}")

        record = self.store.get(request_id)
        if record is None:
            raise NotFoundError("approval request", request_id)
        if record.status != "pending":
            raise AlreadyResolvedError(request_id, record.status)

        target = "approved" if action == "approve" else "rejected"
        with log_context(task_id=record.task_id, approval_id=record.id):
            task = self.task_store.get(record.task_id)
            if task is None:
                raise NotFoundError("task", record.task_id)
            if task.status != TaskStatus.AWAITING_APPROVAL:
                raise InvalidStateError(
                    f"task {task.id} is {task.status.value}, not awaiting_approval",
                    current_status=task.status.value,
                )

            resolved = self.store.set_status(request_id, target, expected="pending")
            if resolved is None:
                current = self.store.get(request_id)
                raise AlreadyResolvedError(request_id, current.status if current else "resolved")

            try:
                if action == "approve":
                    plan = task.plan.model_copy(update={"approved_at": resolved.responded_at}) if task.plan else None
                    self.task_store.transition(
                        task.id, {TaskStatus.AWAITING_APPROVAL}, TaskStatus.APPROVED, plan=plan
                    )
                else:
                    self.task_store.transition(task.id, {TaskStatus.AWAITING_APPROVAL}, TaskStatus.FAILED)
            except Exception:
                # the request must not stay resolved while the task still waits on it
                reopened = self.store.reopen(request_id, expected=target)
                self.logger.exception(
                    "approval_task_transition_failed",
                    extra={"extra_fields": {"action": action, "request_reopened": reopened}},
                )
                raise

            self.logger.info("approval_resolved", extra={"extra_fields": {"action": action, "status": target}})
            return resolved

    def mark_executed(self, task_id: str) -> int:
        return self.store.mark_task_executed(task_id)

    def list_requests(self, status: str | None = None) -> list[ApprovalRequest]:
        return self.store.list_all(status=status)
