from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from shipwright.core.orchestration.orchestrator import Orchestrator

from .deps import get_orchestrator

router = APIRouter()


@router.get("/summary")
def outcome_summary(
    window_days: int = Query(default=7, ge=1, le=365),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    summary = orchestrator.ledger.get_outcome_summary(window_days=window_days)
    return {"success": True, "summary": summary.model_dump()}


@router.get("/skills/{skill}")
def skill_stats(
    skill: str,
    window_days: int = Query(default=30, ge=1, le=365),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    stats = orchestrator.ledger.get_skill_stats(skill, window_days=window_days)
    return {"success": True, "stats": stats.model_dump()}


@router.get("/failures")
def recent_failures(
    skill: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=200),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    failures = orchestrator.ledger.get_recent_failures(skill=skill, limit=limit)
    return {"success": True, "failures": [record.model_dump() for record in failures]}
