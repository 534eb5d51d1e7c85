from __future__ import annotations

from typing import Any

from .schemas import ActionType

_ACTION_TYPES: dict[str, ActionType] = {
    "code": "pr",
    "deploy": "deploy",
    "contract": "deploy",
    "post": "post",
    "other": "task",
}


def map_step_to_skill(action: str, details: dict[str, Any] | None = None) -> str:
    details = details or {}
    if action == "code":
        return "github_push" if details.get("targetRepo") else "code_generation"
    if action == "deploy":
        platform = details.get("platform")
        return str(platform) if platform else "vercel_deploy"
    if action == "contract":
        return "contract_deploy"
    if action == "post":
        return "social_post"
    return action


def action_type_for_step(action: str) -> ActionType:
    return _ACTION_TYPES.get(action, "task")
