from __future__ import annotations

from functools import lru_cache

from shipwright.core.orchestration.orchestrator import Orchestrator


@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    return Orchestrator()
