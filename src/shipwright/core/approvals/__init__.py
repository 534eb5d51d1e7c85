from .schemas import ApprovalAction, ApprovalRequest, ApprovalStatus
from .service import ApprovalGate
from .store import ApprovalStore

__all__ = ["ApprovalAction", "ApprovalGate", "ApprovalRequest", "ApprovalStatus", "ApprovalStore"]
