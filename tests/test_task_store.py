from __future__ import annotations

import pytest

from shipwright.core.errors import InvalidStateError
from shipwright.core.tasks.schemas import TaskStatus
from shipwright.core.tasks.store import TaskStore


def test_create_and_queue_order(tmp_path) -> None:
    store = TaskStore(tmp_path)
    first = store.create_task("Ship landing page", "Build and deploy it", "base")
    second = store.create_task("Write docs")

    assert first.status == TaskStatus.PENDING
    assert first.id.startswith("task_")
    assert second.description == "Write docs"
    assert [task.id for task in store.get_pending_tasks()] == [first.id, second.id]
    assert [task.id for task in store.list_all()] == [second.id, first.id]

    with pytest.raises(ValueError):
        store.create_task("   ")


def test_update_task_merges_fields_and_returns_none_for_unknown(tmp_path) -> None:
    store = TaskStore(tmp_path)
    task = store.create_task("Ship landing page")

    updated = store.update_task(task.id, {"description": "new copy"})
    assert updated is not None
    assert updated.description == "new copy"
    assert updated.updated_at >= task.updated_at
    assert store.update_task("task_missing", {"title": "x"}) is None

    with pytest.raises(ValueError):
        store.update_task(task.id, {"id": "other"})


def test_status_never_returns_to_pending(tmp_path) -> None:
    store = TaskStore(tmp_path)
    task = store.create_task("Ship landing page")
    store.transition(task.id, {TaskStatus.PENDING}, TaskStatus.PLANNING)

    with pytest.raises(InvalidStateError):
        store.transition(task.id, {TaskStatus.PLANNING}, TaskStatus.PENDING)
    with pytest.raises(InvalidStateError):
        store.transition(task.id, {TaskStatus.PLANNING}, TaskStatus.COMPLETED)
    assert store.get(task.id).status == TaskStatus.PLANNING


def test_update_task_refuses_lifecycle_fields(tmp_path) -> None:
    store = TaskStore(tmp_path)
    task = store.create_task("Ship landing page")

    for fields in ({"status": "approved"}, {"plan": None}, {"result": None}):
        with pytest.raises(ValueError):
            store.update_task(task.id, fields)
    assert store.get(task.id).status == TaskStatus.PENDING


def test_transition_is_compare_and_swap(tmp_path) -> None:
    store = TaskStore(tmp_path)
    task = store.create_task("Ship landing page")

    moved = store.transition(task.id, {TaskStatus.PENDING}, TaskStatus.PLANNING)
    assert moved is not None and moved.status == TaskStatus.PLANNING

    with pytest.raises(InvalidStateError) as excinfo:
        store.transition(task.id, {TaskStatus.PENDING}, TaskStatus.PLANNING)
    assert excinfo.value.current_status == "planning"
    assert store.transition("task_missing", {TaskStatus.PENDING}, TaskStatus.PLANNING) is None


def test_approved_queue_includes_executing_oldest_first(tmp_path) -> None:
    store = TaskStore(tmp_path)
    older = store.create_task("older")
    newer = store.create_task("newer")
    for task in (older, newer):
        store.transition(task.id, {TaskStatus.PENDING}, TaskStatus.PLANNING)
        store.transition(task.id, {TaskStatus.PLANNING}, TaskStatus.AWAITING_APPROVAL)
        store.transition(task.id, {TaskStatus.AWAITING_APPROVAL}, TaskStatus.APPROVED)
    store.transition(newer.id, {TaskStatus.APPROVED}, TaskStatus.EXECUTING)

    assert [task.id for task in store.get_approved_tasks()] == [older.id, newer.id]
    assert [task.id for task in store.get_pending_tasks()] == [older.id]
