from fastapi.testclient import TestClient

from fakes import FakeIntegrations, RecordingNotifier, build_orchestrator
from shipwright.apps.api.deps import get_orchestrator
from shipwright.apps.api.main import app


def _client(orchestrator) -> TestClient:
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


def test_create_plan_approve_execute_flow(tmp_path) -> None:
    notifier = RecordingNotifier()
    integrations = FakeIntegrations()
    orchestrator = build_orchestrator(tmp_path, integrations=integrations, notifier=notifier)

    try:
        with _client(orchestrator) as client:
            created = client.post("/tasks", json={"title": "Ship landing page", "description": "One page site"})
            assert created.status_code == 200
            task_id = created.json()["task"]["id"]
            assert created.json()["task"]["status"] == "pending"

            planned = client.post(f"/tasks/{task_id}/plan")
            assert planned.status_code == 200
            assert planned.json()["task"]["status"] == "awaiting_approval"
            approve_link = notifier.messages[0]["meta"]["links"]["Approve"]
            assert approve_link.endswith("/approve")

            pending = client.get("/approvals", params={"status": "pending"}).json()["approvals"]
            assert [item["task_id"] for item in pending] == [task_id]
            request_id = pending[0]["id"]

            approved = client.get(f"/approvals/{request_id}/approve")
            assert approved.status_code == 200
            assert approved.json()["approval"]["status"] == "approved"

            again = client.post(f"/approvals/{request_id}/reject")
            assert again.status_code == 200
            assert again.json()["success"] is False
            assert again.json()["status"] == "approved"

            executed = client.post(f"/tasks/{task_id}/execute")
            assert executed.status_code == 200
            body = executed.json()["task"]
            assert body["status"] == "completed"
            assert [output["type"] for output in body["result"]["outputs"]] == ["repo", "deployment", "post"]

            status = client.get("/status").json()
            assert status["tasks"]["completed"] == 1
            assert status["completed_projects"] == 1

            summary = client.get("/outcomes/summary").json()["summary"]
            assert summary["total_actions"] == 4
    finally:
        app.dependency_overrides.clear()


def test_error_envelopes(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)

    try:
        with _client(orchestrator) as client:
            missing = client.get("/tasks/nope")
            assert missing.status_code == 404
            assert missing.json() == {"success": False, "error": "task not found: nope"}

            assert client.get("/approvals/nope/approve").status_code == 404
            assert client.post("/tasks", json={"title": "   "}).status_code == 400

            task_id = client.post("/tasks", json={"title": "Ship docs"}).json()["task"]["id"]
            conflict = client.post(f"/tasks/{task_id}/execute")
            assert conflict.status_code == 409
            assert conflict.json()["current_status"] == "pending"
    finally:
        app.dependency_overrides.clear()


def test_failed_execution_maps_to_bad_gateway(tmp_path) -> None:
    integrations = FakeIntegrations(failures={"deploy": RuntimeError("503 service unavailable")})
    orchestrator = build_orchestrator(tmp_path, integrations=integrations)
    task = orchestrator.task_store.create_task("Ship landing page")
    task = orchestrator.workflow.generate_plan(task.id)
    orchestrator.approvals.resolve(task.plan.id, "approve")

    try:
        with _client(orchestrator) as client:
            response = client.post(f"/tasks/{task.id}/execute")
            assert response.status_code == 502
            assert response.json()["success"] is False
            assert orchestrator.task_store.get(task.id).status.value == "failed"
    finally:
        app.dependency_overrides.clear()


def test_cron_trigger_and_jobs(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    task = orchestrator.task_store.create_task("Ship landing page")

    try:
        with _client(orchestrator) as client:
            jobs = client.get("/cron/jobs").json()["jobs"]
            assert jobs[:2] == ["plan", "execute"]

            report = client.post("/cron/trigger", json={"job": "plan"}).json()["report"]
            assert report["planned"] == task.id

            assert client.post("/cron/trigger", json={"job": "nope"}).status_code == 400
    finally:
        app.dependency_overrides.clear()


def test_patch_cannot_change_status(tmp_path) -> None:
    orchestrator = build_orchestrator(tmp_path)
    waiting = orchestrator.workflow.generate_plan(orchestrator.task_store.create_task("Ship landing page").id)
    fresh = orchestrator.task_store.create_task("Ship docs")

    try:
        with _client(orchestrator) as client:
            skipped = client.patch(f"/tasks/{waiting.id}", json={"status": "approved"})
            assert skipped.status_code == 422
            stranded = client.patch(f"/tasks/{fresh.id}", json={"title": "Ship docs v2", "status": "planning"})
            assert stranded.status_code == 422

            renamed = client.patch(f"/tasks/{fresh.id}", json={"title": "Ship docs v2"})
            assert renamed.status_code == 200
            assert renamed.json()["task"]["status"] == "pending"

            approved = client.post(f"/approvals/{waiting.plan.id}/approve")
            assert approved.status_code == 200
            assert approved.json()["approval"]["status"] == "approved"
    finally:
        app.dependency_overrides.clear()

    assert orchestrator.task_store.get(waiting.id).status.value == "approved"
    assert fresh.id in [task.id for task in orchestrator.task_store.get_pending_tasks()]
