from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from shipwright.core.errors import NotFoundError, UpstreamFailure
from shipwright.core.orchestration.orchestrator import Orchestrator
from shipwright.core.tasks.schemas import Chain, TaskStatus

from .deps import get_orchestrator

router = APIRouter()


class CreateTaskRequest(BaseModel):
    title: str
    description: str | None = None
    chain: Chain | None = None


class PatchTaskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    chain: Chain | None = None


@router.get("")
def list_tasks(
    status: TaskStatus | None = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    tasks = orchestrator.task_store.list_all(status=status)
    return {"success": True, "tasks": [task.model_dump(mode="json") for task in tasks]}


@router.post("")
def create_task(request: CreateTaskRequest, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    task = orchestrator.task_store.create_task(request.title, request.description, request.chain)
    return {"success": True, "task": task.model_dump(mode="json")}


@router.get("/{task_id}")
def get_task(task_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    task = orchestrator.task_store.get(task_id)
    if task is None:
        raise NotFoundError("task", task_id)
    return {"success": True, "task": task.model_dump(mode="json")}


@router.patch("/{task_id}")
def patch_task(
    task_id: str,
    request: PatchTaskRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    fields = request.model_dump(exclude_unset=True)
    if not fields:
        raise ValueError("no fields to update")
    task = orchestrator.task_store.update_task(task_id, fields)
    if task is None:
        raise NotFoundError("task", task_id)
    return {"success": True, "task": task.model_dump(mode="json")}


@router.post("/{task_id}/plan")
def generate_plan(task_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    task = orchestrator.workflow.generate_plan(task_id)
    return {"success": True, "task": task.model_dump(mode="json")}


@router.post("/{task_id}/execute")
def execute_task(task_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    task = orchestrator.engine.execute(task_id)
    if task.status == TaskStatus.FAILED:
        error = task.result.error if task.result else "execution failed"
        raise UpstreamFailure(f"execution failed: {error}")
    return {"success": True, "task": task.model_dump(mode="json")}
