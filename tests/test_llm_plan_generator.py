from __future__ import annotations

import json

import httpx

from shipwright.core.config.settings import LLMSettings
from shipwright.core.models.llm_provider import ShipwrightLLM, parse_json_object
from shipwright.core.planning.generator import LLMPlanGenerator, PlanningContext
from shipwright.core.tasks.schemas import StepAction, Task


def _llm_answering(monkeypatch, content: str, captured: list[dict] | None = None) -> ShipwrightLLM:
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(json.loads(request.content))
        return httpx.Response(200, request=request, json={"choices": [{"message": {"content": content}}]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    monkeypatch.setattr("shipwright.core.http.client.get_http_client", lambda: client)
    monkeypatch.setenv("SHIPWRIGHT_HTTP_RETRIES", "0")
    return ShipwrightLLM(LLMSettings(provider="openai", api_key="sk-test"))


def test_generator_parses_fenced_plan(monkeypatch) -> None:
    content = """Here you go:
```json
{"summary": "Landing page", "estimatedTime": "2h", "risks": ["dns"],
 "steps": [
   {"order": 2, "action": "deploy", "description": "Ship it", "details": {"projectName": "landing"}},
   {"order": 1, "action": "code", "description": "Write it"}
 ]}
```"""
    captured: list[dict] = []
    generator = LLMPlanGenerator(_llm_answering(monkeypatch, content, captured))
    task = Task(title="Landing page", description="A page for the launch", chain="base")

    result = generator.generate(task, PlanningContext(goals=["Ship a project on Base"], completed_projects=["docs"]))

    assert result.success is True
    plan = result.plan
    assert plan.task_id == task.id
    assert [step.action for step in plan.steps] == [StepAction.CODE, StepAction.DEPLOY]
    assert plan.estimated_time == "2h"
    prompt = captured[0]["messages"][1]["content"]
    assert "Landing page" in prompt
    assert "Ship a project on Base" in prompt


def test_generator_reports_failure_when_provider_off() -> None:
    generator = LLMPlanGenerator(ShipwrightLLM(LLMSettings(provider="off")))

    result = generator.generate(Task(title="x", description="x"), PlanningContext())

    assert result.success is False
    assert result.plan is None
    assert "off" in result.error


def test_generator_rejects_unknown_actions_and_duplicate_orders(monkeypatch) -> None:
    task = Task(title="x", description="x")
    unknown = json.dumps({"summary": "s", "steps": [{"order": 1, "action": "teleport"}]})
    duplicate = json.dumps({"summary": "s", "steps": [{"order": 1, "action": "code"}, {"order": 1, "action": "post"}]})

    first = LLMPlanGenerator(_llm_answering(monkeypatch, unknown)).generate(task, PlanningContext())
    second = LLMPlanGenerator(_llm_answering(monkeypatch, duplicate)).generate(task, PlanningContext())

    assert first.success is False
    assert first.error.startswith("invalid plan")
    assert second.success is False
    assert "unique" in second.error


def test_parse_json_object_variants() -> None:
    assert parse_json_object('{"a": 1}') == {"a": 1}
    assert parse_json_object('noise {"a": {"b": 2}} trailing') == {"a": {"b": 2}}
    assert parse_json_object("[1, 2]") is None
    assert parse_json_object("not json") is None
