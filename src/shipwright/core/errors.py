from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shipwright.core.outcomes.schemas import ErrorClassification


class ShipwrightError(RuntimeError):
    """Base error for task orchestration operations."""


class NotFoundError(ShipwrightError):
    def __init__(self, kind: str, id: str) -> None:
        super().__init__(f"{kind} not found: {id}")
        self.kind = kind
        self.id = id


class InvalidStateError(ShipwrightError):
    def __init__(self, message: str, current_status: str | None = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class AlreadyResolvedError(ShipwrightError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(f"approval request {request_id} has already been {status}")
        self.request_id = request_id
        self.status = status


class UpstreamFailure(ShipwrightError):
    def __init__(self, message: str, classification: ErrorClassification | None = None) -> None:
        super().__init__(message)
        self.classification = classification
