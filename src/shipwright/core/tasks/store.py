from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from shipwright.core.clock import now_iso
from shipwright.core.errors import InvalidStateError
from shipwright.core.storage.jsonl import JsonlStore

from .schemas import Chain, CompletedProject, Task, TaskStatus, can_transition

_UPDATABLE_FIELDS = {"title", "description", "chain"}


class TaskStore:
    """Single source of truth for task lifecycle state.

    Status changes only through ``transition``, a compare-and-swap along the
    status graph; ``update_task`` edits content fields and nothing else.
    """

    def __init__(self, state_dir: Path) -> None:
        self._tasks: JsonlStore[Task] = JsonlStore(state_dir, "tasks.jsonl", Task)
        self._projects: JsonlStore[CompletedProject] = JsonlStore(
            state_dir, "completed_projects.jsonl", CompletedProject
        )
        self.logger = logging.getLogger("shipwright.tasks")

    def create_task(self, title: str, description: str | None = None, chain: Chain | None = None) -> Task:
        title = title.strip()
        if not title:
            raise ValueError("title is required")
        task = Task(title=title, description=(description or "").strip() or title, chain=chain)
        self._tasks.append(task)
        self.logger.info("task_created", extra={"extra_fields": {"task_id": task.id, "title": task.title}})
        return task

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks.load_all():
            if task.id == task_id:
                return task
        return None

    def list_all(self, status: TaskStatus | None = None) -> list[Task]:
        tasks = self._tasks.load_all()
        if status is not None:
            tasks = [task for task in tasks if task.status == status]
        return sorted(tasks, key=lambda task: task.created_at, reverse=True)

    def _oldest_first(self, statuses: Iterable[TaskStatus]) -> list[Task]:
        wanted = set(statuses)
        tasks = [task for task in self._tasks.load_all() if task.status in wanted]
        return sorted(tasks, key=lambda task: task.created_at)

    def get_pending_tasks(self) -> list[Task]:
        return self._oldest_first((TaskStatus.PENDING, TaskStatus.APPROVED))

    def get_awaiting_approval_tasks(self) -> list[Task]:
        return self._oldest_first((TaskStatus.AWAITING_APPROVAL,))

    def get_approved_tasks(self) -> list[Task]:
        return self._oldest_first((TaskStatus.APPROVED, TaskStatus.EXECUTING))

    def update_task(self, task_id: str, fields: dict[str, Any]) -> Task | None:
        """Merge title, description or chain into the task; ``None`` when the id is unknown."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"fields cannot be updated: {', '.join(sorted(unknown))}")

        updated: list[Task] = []

        def apply(tasks: list[Task]) -> bool:
            for idx, current in enumerate(tasks):
                if current.id != task_id:
                    continue
                merged = current.model_dump()
                merged.update(fields)
                merged["updated_at"] = now_iso()
                candidate = Task.model_validate(merged)
                tasks[idx] = candidate
                updated.append(candidate)
                return True
            return False

        self._tasks.mutate(apply)
        if not updated:
            self.logger.warning("task_update_missing", extra={"extra_fields": {"task_id": task_id}})
            return None
        return updated[0]

    def transition(
        self,
        task_id: str,
        expected: Iterable[TaskStatus],
        target: TaskStatus,
        **fields: Any,
    ) -> Task | None:
        """Compare-and-swap on status: apply only when the stored status is in ``expected``.

        Returns ``None`` for an unknown task and raises ``InvalidStateError``
        when the stored status does not match.
        """
        allowed = set(expected)
        updated: list[Task] = []

        def apply(tasks: list[Task]) -> bool:
            for idx, current in enumerate(tasks):
                if current.id != task_id:
                    continue
                if current.status not in allowed:
                    raise InvalidStateError(
                        f"task {task_id} is {current.status.value}, expected one of "
                        f"{', '.join(sorted(status.value for status in allowed))}",
                        current_status=current.status.value,
                    )
                if current.status != target and not can_transition(current.status, target):
                    raise InvalidStateError(
                        f"task {task_id} cannot move from {current.status.value} to {target.value}",
                        current_status=current.status.value,
                    )
                merged = current.model_dump()
                merged.update(fields)
                merged["status"] = target
                merged["updated_at"] = now_iso()
                tasks[idx] = Task.model_validate(merged)
                updated.append(tasks[idx])
                return True
            return False

        self._tasks.mutate(apply)
        if not updated:
            return None
        self.logger.info(
            "task_transition",
            extra={"extra_fields": {"task_id": task_id, "status": target.value}},
        )
        return updated[0]

    def add_completed_project(self, project: CompletedProject) -> None:
        self._projects.append(project)

    def list_completed_projects(self) -> list[CompletedProject]:
        return sorted(self._projects.load_all(), key=lambda project: project.completed_at, reverse=True)
