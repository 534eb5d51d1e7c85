from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query

from shipwright.core.approvals.schemas import ApprovalAction
from shipwright.core.orchestration.orchestrator import Orchestrator

from .deps import get_orchestrator

router = APIRouter()


@router.get("")
def list_approvals(
    status: Literal["pending", "approved", "rejected", "executed"] | None = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    requests = orchestrator.approvals.list_requests(status=status)
    return {"success": True, "approvals": [request.model_dump() for request in requests]}


@router.api_route("/{request_id}/{action}", methods=["GET", "POST"])
def resolve_approval(
    request_id: str,
    action: ApprovalAction,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    resolved = orchestrator.approvals.resolve(request_id, action)
    return {"success": True, "approval": resolved.model_dump()}
