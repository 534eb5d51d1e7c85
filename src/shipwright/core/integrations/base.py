from __future__ import annotations

from typing import Literal, Protocol

from pydantic import BaseModel, Field

from shipwright.core.errors import ShipwrightError
from shipwright.core.planning.code import GeneratedFile
from shipwright.core.tasks.schemas import PlanStep, Task, TaskOutput

DeploymentState = Literal["queued", "building", "ready", "error"]


class IntegrationNotConfigured(ShipwrightError):
    def __init__(self, action: str) -> None:
        super().__init__(f"integration not configured: {action}")
        self.action = action


class Deployment(BaseModel):
    id: str
    state: DeploymentState = "queued"
    url: str | None = None
    data: dict = Field(default_factory=dict)


class CodePublisher(Protocol):
    def publish(self, task: Task, step: PlanStep, files: list[GeneratedFile]) -> TaskOutput: ...


class Deployer(Protocol):
    def deploy(self, task: Task, step: PlanStep) -> Deployment: ...

    def deployment_status(self, deployment_id: str) -> Deployment: ...


class ContractSubmitter(Protocol):
    def submit(self, task: Task, step: PlanStep) -> TaskOutput: ...


class SocialPoster(Protocol):
    def post(self, text: str, platforms: list[str] | None = None, correlation_id: str | None = None) -> TaskOutput: ...


class StepRunner(Protocol):
    def run(self, task: Task, step: PlanStep) -> TaskOutput: ...
