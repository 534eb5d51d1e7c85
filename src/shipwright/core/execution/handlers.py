from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from shipwright.core.config.settings import IntegrationSettings
from shipwright.core.integrations.base import (
    CodePublisher,
    ContractSubmitter,
    Deployer,
    Deployment,
    SocialPoster,
    StepRunner,
)
from shipwright.core.planning.code import CodeGenerator
from shipwright.core.tasks.schemas import PlanStep, StepAction, Task, TaskOutput

from .polling import poll_until


class DeploymentFailed(RuntimeError):
    pass


@dataclass
class StepCollaborators:
    code_generator: CodeGenerator
    code_publisher: CodePublisher
    deployer: Deployer
    contract_submitter: ContractSubmitter
    social_poster: SocialPoster
    other_runner: StepRunner


StepHandler = Callable[[Task, PlanStep], TaskOutput]


class StepDispatcher:
    """Routes a plan step to its collaborator by action.

    Every ``StepAction`` member must have a handler; a missing one fails at
    construction rather than at dispatch time.
    """

    def __init__(self, collaborators: StepCollaborators, settings: IntegrationSettings | None = None) -> None:
        self.collaborators = collaborators
        self.settings = settings or IntegrationSettings()
        self._handlers: dict[StepAction, StepHandler] = {
            StepAction.CODE: self._code,
            StepAction.DEPLOY: self._deploy,
            StepAction.CONTRACT: self._contract,
            StepAction.POST: self._post,
            StepAction.OTHER: self._other,
        }
        missing = set(StepAction) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for step actions: {', '.join(sorted(item.value for item in missing))}")

    def dispatch(self, task: Task, step: PlanStep) -> TaskOutput:
        return self._handlers[step.action](task, step)

    def _code(self, task: Task, step: PlanStep) -> TaskOutput:
        files = self.collaborators.code_generator.generate_files(task, step)
        return self.collaborators.code_publisher.publish(task, step, files)

    def _deploy(self, task: Task, step: PlanStep) -> TaskOutput:
        deployer = self.collaborators.deployer
        deployment = deployer.deploy(task, step)
        if deployment.state not in ("ready", "error"):
            deployment = poll_until(
                lambda: _settled(deployer.deployment_status(deployment.id)),
                timeout_s=self.settings.poll_timeout_s,
                interval_s=self.settings.poll_interval_s,
                description=f"deployment {deployment.id}",
            )
        if deployment.state == "error":
            raise DeploymentFailed(f"deployment {deployment.id} failed: {deployment.data.get('error', 'unknown error')}")
        return TaskOutput(type="deployment", url=deployment.url, data={"deployment_id": deployment.id, **deployment.data})

    def _contract(self, task: Task, step: PlanStep) -> TaskOutput:
        return self.collaborators.contract_submitter.submit(task, step)

    def _post(self, task: Task, step: PlanStep) -> TaskOutput:
        text = str(step.details.get("text") or step.details.get("contentHint") or step.description)
        platforms = step.details.get("platforms")
        plan_id = task.plan.id if task.plan else "none"
        return self.collaborators.social_poster.post(
            text,
            platforms=[str(item) for item in platforms] if isinstance(platforms, list) else None,
            correlation_id=f"{task.id}:{plan_id}:{step.order}",
        )

    def _other(self, task: Task, step: PlanStep) -> TaskOutput:
        return self.collaborators.other_runner.run(task, step)


def _settled(deployment: Deployment) -> Deployment | None:
    return deployment if deployment.state in ("ready", "error") else None
