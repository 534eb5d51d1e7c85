from __future__ import annotations

import pytest

from fakes import FakeIntegrations, RecordingNotifier, build_orchestrator
from shipwright.core.config.settings import AgentConfig
from shipwright.core.errors import InvalidStateError
from shipwright.core.outcomes.ledger import JsonlOutcomeStore
from shipwright.core.tasks.schemas import ExecutionProgress, TaskOutput, TaskResult, TaskStatus


def _approved_task(orchestrator, title: str = "Ship landing page"):
    task = orchestrator.task_store.create_task(title)
    task = orchestrator.workflow.generate_plan(task.id)
    orchestrator.approvals.resolve(task.plan.id, "approve")
    return orchestrator.task_store.get(task.id)


def test_ship_landing_page_stops_at_failing_step(tmp_path) -> None:
    integrations = FakeIntegrations(failures={"deploy": RuntimeError("503 service unavailable")})
    notifier = RecordingNotifier()
    orchestrator = build_orchestrator(tmp_path, integrations=integrations, notifier=notifier)

    task = orchestrator.task_store.create_task("Ship landing page")
    task = orchestrator.workflow.generate_plan(task.id)
    assert orchestrator.approvals.list_requests(status="pending")[0].id == task.plan.id
    orchestrator.approvals.resolve(task.plan.id, "approve")
    assert orchestrator.task_store.get(task.id).status == TaskStatus.APPROVED

    assert orchestrator.dispatcher.run_execution() == task.id

    finished = orchestrator.task_store.get(task.id)
    assert finished.status == TaskStatus.FAILED
    assert finished.result.error_class == "external_service"
    assert [output.type for output in finished.result.outputs] == ["repo"]
    assert finished.result.execution_progress.last_completed_step == 1
    assert integrations.calls == ["code", "deploy"]

    records = JsonlOutcomeStore(tmp_path).load_all()
    assert len(records) == 3
    assert [(record.skill, record.success) for record in records] == [
        ("plan_generation", True),
        ("code_generation", True),
        ("vercel_deploy", False),
    ]
    assert records[2].error_class == "external_service"
    assert records[2].action_type == "deploy"

    assert [request.status for request in orchestrator.approvals.list_requests()] == ["executed"]
    assert notifier.messages[-1]["title"] == "Failed: Ship landing page"
    assert orchestrator.task_store.list_completed_projects() == []


def test_successful_run_completes_and_records_project(tmp_path) -> None:
    integrations = FakeIntegrations()
    integrations.deploy_states = ["building", "building", "ready"]
    orchestrator = build_orchestrator(tmp_path, integrations=integrations)
    task = _approved_task(orchestrator)

    finished = orchestrator.engine.execute(task.id)

    assert finished.status == TaskStatus.COMPLETED
    assert finished.result.success is True
    assert [output.type for output in finished.result.outputs] == ["repo", "deployment", "post"]
    project = orchestrator.task_store.list_completed_projects()[0]
    assert project.name == "Ship landing page"
    assert project.urls["deployment"] == "https://landing.example.app"


def test_resume_skips_completed_steps(tmp_path) -> None:
    integrations = FakeIntegrations()
    orchestrator = build_orchestrator(tmp_path, integrations=integrations)
    task = _approved_task(orchestrator)
    orchestrator.task_store.transition(
        task.id,
        {TaskStatus.APPROVED},
        TaskStatus.EXECUTING,
        result=TaskResult(
            outputs=[TaskOutput(type="repo", url="https://github.com/acme/landing")],
            execution_progress=ExecutionProgress(last_completed_step=1, total_steps=3),
        ),
    )

    finished = orchestrator.engine.execute(task.id)

    assert finished.status == TaskStatus.COMPLETED
    assert integrations.calls == ["deploy", "post"]
    assert [output.type for output in finished.result.outputs] == ["repo", "deployment", "post"]


def test_task_without_plan_is_failed_and_leaves_queue(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")
    for source, target in (
        (TaskStatus.PENDING, TaskStatus.PLANNING),
        (TaskStatus.PLANNING, TaskStatus.AWAITING_APPROVAL),
        (TaskStatus.AWAITING_APPROVAL, TaskStatus.APPROVED),
    ):
        orchestrator.task_store.transition(task.id, {source}, target)

    with pytest.raises(InvalidStateError):
        orchestrator.engine.execute(task.id)

    assert orchestrator.task_store.get(task.id).status == TaskStatus.FAILED
    assert orchestrator.task_store.get_approved_tasks() == []


def test_execute_rejects_unapproved_task(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")

    with pytest.raises(InvalidStateError):
        orchestrator.engine.execute(task.id)
    assert orchestrator.task_store.get(task.id).status == TaskStatus.PENDING


def test_degraded_skill_is_suppressed_without_dispatch(tmp_path) -> None:
    integrations = FakeIntegrations()
    config = AgentConfig(suppress_degraded_skills=True, degraded_min_samples=2, degraded_success_rate=0.5)
    orchestrator = build_orchestrator(tmp_path, integrations=integrations, config=config)
    for _ in range(2):
        orchestrator.ledger.record_failure("pr", "code_generation", "HTTP status 500 for github")
    task = _approved_task(orchestrator)

    finished = orchestrator.engine.execute(task.id)

    assert finished.status == TaskStatus.FAILED
    assert finished.result.error_class == "logic"
    assert "suppressed" in finished.result.error
    assert integrations.calls == []


def test_deploy_that_never_settles_times_out(tmp_path) -> None:
    integrations = FakeIntegrations()
    integrations.settled_state = "building"
    orchestrator = build_orchestrator(tmp_path, integrations=integrations)
    task = _approved_task(orchestrator)

    finished = orchestrator.engine.execute(task.id)

    assert finished.status == TaskStatus.FAILED
    assert finished.result.error_class == "timeout"
    assert [output.type for output in finished.result.outputs] == ["repo"]
