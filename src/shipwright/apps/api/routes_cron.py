from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shipwright.core.orchestration.orchestrator import Orchestrator

from .deps import get_orchestrator

router = APIRouter()


class TriggerRequest(BaseModel):
    job: str | None = None


@router.post("/trigger")
def trigger_cron(
    request: TriggerRequest | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    report = orchestrator.dispatcher.trigger(request.job if request else None)
    return {"success": True, "report": report.model_dump()}


@router.get("/jobs")
def list_cron_jobs(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    return {"success": True, "jobs": orchestrator.dispatcher.job_names()}
