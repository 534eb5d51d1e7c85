from __future__ import annotations

from uuid import uuid4

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from shipwright.core.config.settings import default_state_dir
from shipwright.core.errors import AlreadyResolvedError, InvalidStateError, NotFoundError, UpstreamFailure
from shipwright.core.logging import configure_logging
from shipwright.core.logging.context import log_context
from shipwright.core.orchestration.orchestrator import Orchestrator
from shipwright.core.tasks.schemas import TaskStatus

from .deps import get_orchestrator
from .routes_approvals import router as approvals_router
from .routes_cron import router as cron_router
from .routes_outcomes import router as outcomes_router
from .routes_tasks import router as tasks_router

app = FastAPI(title="Shipwright API")
configure_logging(default_state_dir(), service="api")

app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
app.include_router(approvals_router, prefix="/approvals", tags=["approvals"])
app.include_router(cron_router, prefix="/cron", tags=["cron"])
app.include_router(outcomes_router, prefix="/outcomes", tags=["outcomes"])


@app.middleware("http")
async def request_context_middleware(request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id):
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def _failure(status_code: int, error: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error, **extra})


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _failure(404, str(exc))


@app.exception_handler(InvalidStateError)
async def handle_invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    return _failure(409, str(exc), current_status=exc.current_status)


@app.exception_handler(AlreadyResolvedError)
async def handle_already_resolved(request: Request, exc: AlreadyResolvedError) -> JSONResponse:
    return _failure(200, str(exc), status=exc.status)


@app.exception_handler(UpstreamFailure)
async def handle_upstream_failure(request: Request, exc: UpstreamFailure) -> JSONResponse:
    error_class = exc.classification.error_class if exc.classification else None
    return _failure(502, str(exc), error_class=error_class)


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return _failure(400, str(exc))


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@app.get("/status")
def status(orchestrator: Orchestrator = Depends(get_orchestrator)) -> dict[str, object]:
    tasks = orchestrator.task_store.list_all()
    counts = {item.value: 0 for item in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    return {
        "success": True,
        "tasks": counts,
        "pending_approvals": len(orchestrator.approvals.list_requests(status="pending")),
        "completed_projects": len(orchestrator.task_store.list_completed_projects()),
        "llm_enabled": orchestrator.llm.enabled,
        "integrations": sorted(orchestrator.settings.integrations.bridge_urls),
        "jobs": orchestrator.dispatcher.job_names(),
    }


def run() -> None:
    uvicorn.run("shipwright.apps.api.main:app", host="127.0.0.1", port=8000)
