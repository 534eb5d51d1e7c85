from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ApprovalStatus = Literal["pending", "approved", "rejected", "executed"]
ApprovalAction = Literal["approve", "reject"]


class ApprovalRequest(BaseModel):
    id: str
    plan_id: str
    task_id: str
    sent_at: str
    status: ApprovalStatus = "pending"
    responded_at: str | None = None
