from __future__ import annotations

import pytest

from fakes import build_orchestrator
from shipwright.core.errors import AlreadyResolvedError, NotFoundError
from shipwright.core.tasks.schemas import TaskStatus


def test_approve_twice_reports_already_resolved(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")
    task = orchestrator.workflow.generate_plan(task.id)

    resolved = orchestrator.approvals.resolve(task.plan.id, "approve")
    assert resolved.status == "approved"
    approved = orchestrator.task_store.get(task.id)
    assert approved.status == TaskStatus.APPROVED
    assert approved.plan.approved_at is not None

    with pytest.raises(AlreadyResolvedError) as excinfo:
        orchestrator.approvals.resolve(task.plan.id, "approve")
    assert excinfo.value.status == "approved"
    assert orchestrator.task_store.get(task.id).updated_at == approved.updated_at


def test_reject_fails_the_task(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")
    task = orchestrator.workflow.generate_plan(task.id)

    orchestrator.approvals.resolve(task.plan.id, "reject")

    assert orchestrator.task_store.get(task.id).status == TaskStatus.FAILED
    assert orchestrator.approvals.has_pending_request(task.id) is False
    with pytest.raises(AlreadyResolvedError):
        orchestrator.approvals.resolve(task.plan.id, "approve")


def test_unknown_request_is_not_found_and_mutates_nothing(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")
    before = orchestrator.task_store.list_all()

    with pytest.raises(NotFoundError):
        orchestrator.approvals.resolve("plan_doesnotexist", "approve")

    assert orchestrator.task_store.list_all() == before
    assert orchestrator.task_store.get(task.id).status == TaskStatus.PENDING


def test_failed_task_transition_reopens_the_request(tmp_path, monkeypatch) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")
    task = orchestrator.workflow.generate_plan(task.id)

    def broken_transition(*args, **kwargs):
        raise OSError("disk full")

    real_transition = orchestrator.task_store.transition
    monkeypatch.setattr(orchestrator.task_store, "transition", broken_transition)
    with pytest.raises(OSError):
        orchestrator.approvals.resolve(task.plan.id, "approve")

    request = orchestrator.approvals.store.get(task.plan.id)
    assert request.status == "pending"
    assert request.responded_at is None
    assert orchestrator.task_store.get(task.id).status == TaskStatus.AWAITING_APPROVAL

    monkeypatch.setattr(orchestrator.task_store, "transition", real_transition)
    assert orchestrator.approvals.resolve(task.plan.id, "approve").status == "approved"
    assert orchestrator.task_store.get(task.id).status == TaskStatus.APPROVED
