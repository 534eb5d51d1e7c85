from __future__ import annotations

import json

import httpx
import pytest

from shipwright.core.config.settings import IntegrationSettings
from shipwright.core.integrations.base import IntegrationNotConfigured
from shipwright.core.integrations.bridge import IntegrationBridge
from shipwright.core.outcomes.classifier import classify_error
from shipwright.core.tasks.schemas import Plan, PlanStep, Task


def _task() -> Task:
    task = Task(title="Landing", description="Landing page")
    plan = Plan(task_id=task.id, summary="s", steps=[PlanStep(order=2, action="deploy", details={"projectName": "landing"})])
    return task.model_copy(update={"plan": plan})


def test_unconfigured_action_is_a_validation_error() -> None:
    bridge = IntegrationBridge(IntegrationSettings())
    task = _task()

    with pytest.raises(IntegrationNotConfigured) as excinfo:
        bridge.deploy(task, task.plan.steps[0])

    assert str(excinfo.value) == "integration not configured: deploy"
    assert classify_error(excinfo.value).error_class == "validation"


def test_deploy_and_status_round_trip(monkeypatch) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(200, request=request, json={"id": "dep_9", "state": "building"})
        return httpx.Response(200, request=request, json={"id": "dep_9", "state": "ready", "url": "https://landing.app"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    monkeypatch.setattr("shipwright.core.http.client.get_http_client", lambda: client)
    bridge = IntegrationBridge(
        IntegrationSettings(bridge_urls={"deploy": "http://bridge.local/deploy/"}, bridge_token="secret")
    )
    task = _task()

    started = bridge.deploy(task, task.plan.steps[0])
    settled = bridge.deployment_status(started.id)

    assert started.state == "building"
    assert settled.url == "https://landing.app"
    post, get = seen
    assert post.headers["Authorization"] == "Bearer secret"
    assert post.headers["Idempotency-Key"] == f"{task.id}:{task.plan.id}:2"
    assert json.loads(post.content)["step"]["details"] == {"projectName": "landing"}
    assert str(get.url) == "http://bridge.local/deploy/dep_9"
