from __future__ import annotations

import logging
from typing import Any

from shipwright.core.config.settings import IntegrationSettings
from shipwright.core.http.client import request_with_retry
from shipwright.core.planning.code import GeneratedFile
from shipwright.core.tasks.schemas import PlanStep, Task, TaskOutput

from .base import Deployment, IntegrationNotConfigured

logger = logging.getLogger("shipwright.integrations")


class IntegrationBridge:
    """Forwards each step to an HTTP endpoint configured per action.

    The endpoint owns the platform mechanics and answers with a task output
    (``{"type", "url", "data"}``) or, for deploys, a deployment record.
    """

    def __init__(self, settings: IntegrationSettings) -> None:
        self.settings = settings

    def _url(self, action: str) -> str:
        url = self.settings.bridge_urls.get(action)
        if not url:
            raise IntegrationNotConfigured(action)
        return url

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.bridge_token:
            headers["Authorization"] = f"Bearer {self.settings.bridge_token}"
        return headers

    def _post(self, action: str, payload: dict[str, Any], idempotency_key: str | None = None) -> dict[str, Any]:
        response = request_with_retry(
            "POST",
            self._url(action),
            headers=self._headers(),
            json=payload,
            idempotency_key=idempotency_key,
        )
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"invalid bridge response for {action}")
        logger.info("bridge_call", extra={"extra_fields": {"action": action, "status": response.status_code}})
        return data

    @staticmethod
    def _step_payload(task: Task, step: PlanStep) -> dict[str, Any]:
        return {
            "task": {"id": task.id, "title": task.title, "description": task.description, "chain": task.chain},
            "step": step.model_dump(mode="json"),
        }

    @staticmethod
    def _step_key(task: Task, step: PlanStep) -> str:
        plan_id = task.plan.id if task.plan else "none"
        return f"{task.id}:{plan_id}:{step.order}"

    def publish(self, task: Task, step: PlanStep, files: list[GeneratedFile]) -> TaskOutput:
        payload = self._step_payload(task, step)
        payload["files"] = [item.model_dump() for item in files]
        return TaskOutput.model_validate(self._post("code", payload, self._step_key(task, step)))

    def deploy(self, task: Task, step: PlanStep) -> Deployment:
        return Deployment.model_validate(self._post("deploy", self._step_payload(task, step), self._step_key(task, step)))

    def deployment_status(self, deployment_id: str) -> Deployment:
        url = f"{self._url('deploy').rstrip('/')}/{deployment_id}"
        response = request_with_retry("GET", url, headers=self._headers())
        return Deployment.model_validate(response.json())

    def submit(self, task: Task, step: PlanStep) -> TaskOutput:
        return TaskOutput.model_validate(self._post("contract", self._step_payload(task, step), self._step_key(task, step)))

    def post(self, text: str, platforms: list[str] | None = None, correlation_id: str | None = None) -> TaskOutput:
        payload = {"text": text, "platforms": platforms or []}
        return TaskOutput.model_validate(self._post("post", payload, correlation_id))

    def run(self, task: Task, step: PlanStep) -> TaskOutput:
        return TaskOutput.model_validate(self._post("other", self._step_payload(task, step), self._step_key(task, step)))
