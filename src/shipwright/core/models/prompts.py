from __future__ import annotations

import json

PLAN_SCHEMA = {
    "summary": "Brief description of what the plan accomplishes",
    "steps": [
        {
            "order": 1,
            "action": "code|deploy|contract|post|other",
            "description": "What this step does",
            "details": {},
        }
    ],
    "estimatedTime": "e.g. 30 minutes",
    "risks": ["potential risk"],
}


def planner_system_prompt() -> str:
    return (
        "You are an autonomous builder agent that ships real projects. "
        "You can push code to repositories, deploy builds, deploy smart contracts "
        "and post updates to social platforms.\n"
        "Break the task into concrete, executable steps. Each step action is one of: "
        "code, deploy, contract, post, other. Be specific about files to create, "
        "consider dependencies between steps and identify risks. Respond with a JSON plan."
    )


def planner_user_prompt(
    title: str,
    description: str,
    chain: str | None,
    goals: list[str],
    completed_projects: list[str],
    insight: str | None = None,
) -> str:
    lines = [
        "Generate an execution plan for the following task.",
        "Use the exact names, handles and details given in the task description.",
        "",
        "TASK:",
        f"Title: {title}",
        f"Description: {description}",
    ]
    if chain:
        lines.append(f"Target chain: {chain}")
    lines.extend(
        [
            "",
            "CONTEXT:",
            f"- Goals: {', '.join(goals) or 'None'}",
            f"- Completed projects: {', '.join(completed_projects) or 'None yet'}",
        ]
    )
    if insight:
        lines.extend(["", "ECOSYSTEM INSIGHTS:", insight])
    lines.extend(
        [
            "",
            'For a code step updating an existing repository put "targetRepo": "owner/repo" in details.',
            'For a deploy step put "platform" and "projectName" in details.',
            "",
            "Respond with a JSON object in this exact format:",
            json.dumps(PLAN_SCHEMA, ensure_ascii=False),
        ]
    )
    return "\n".join(lines)


def code_system_prompt() -> str:
    return "You are a code generator. Output only valid JSON with no markdown and no explanations."


def code_user_prompt(task_title: str, step_description: str, files: list[dict]) -> str:
    return (
        f"Project: {task_title}\n"
        f"Step: {step_description}\n"
        f"Files to produce: {json.dumps(files, ensure_ascii=False)}\n\n"
        'Return {"files": [{"path": "...", "content": "..."}]} with complete file contents.'
    )
