from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ValidationError

from shipwright.core.models.llm_provider import LLMOutputError, ShipwrightLLM
from shipwright.core.models.prompts import code_system_prompt, code_user_prompt
from shipwright.core.tasks.schemas import PlanStep, Task


class GeneratedFile(BaseModel):
    path: str
    content: str


class CodeGenerator(Protocol):
    def generate_files(self, task: Task, step: PlanStep) -> list[GeneratedFile]: ...


class LLMCodeGenerator:
    """Produces file contents for a code step; errors propagate to the step handler."""

    def __init__(self, llm: ShipwrightLLM, max_tokens: int = 8000) -> None:
        self.llm = llm
        self.max_tokens = max_tokens

    def generate_files(self, task: Task, step: PlanStep) -> list[GeneratedFile]:
        requested = step.details.get("files") or []
        if not isinstance(requested, list):
            requested = []
        payload = self.llm.complete_json(
            system=code_system_prompt(),
            user=code_user_prompt(task.title, step.description, [item for item in requested if isinstance(item, dict)]),
            max_tokens=self.max_tokens,
        )
        raw_files = payload.get("files")
        if not isinstance(raw_files, list) or not raw_files:
            raise LLMOutputError("code generation returned no files")
        try:
            return [GeneratedFile.model_validate(item) for item in raw_files]
        except ValidationError as exc:
            raise LLMOutputError(f"code generation returned invalid files: {exc}") from exc
