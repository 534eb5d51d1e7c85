from .engine import ExecutionEngine, SkillSuppressed
from .handlers import DeploymentFailed, StepCollaborators, StepDispatcher
from .polling import PollTimeout, poll_until

__all__ = [
    "DeploymentFailed",
    "ExecutionEngine",
    "PollTimeout",
    "SkillSuppressed",
    "StepCollaborators",
    "StepDispatcher",
    "poll_until",
]
