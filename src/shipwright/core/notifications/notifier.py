from __future__ import annotations

import logging
from typing import Protocol

from shipwright.core.approvals.schemas import ApprovalRequest
from shipwright.core.config.settings import NotificationSettings
from shipwright.core.tasks.schemas import Plan, Task, TaskStatus

from .channels.console import ConsoleNotifier
from .channels.discord import DiscordWebhookNotifier
from .channels.email import ResendEmailNotifier

logger = logging.getLogger("shipwright.notifications")


class Notifier(Protocol):
    def send(self, title: str, body: str, meta: dict | None = None) -> None: ...


class NotificationRouter:
    def __init__(self, channels: list[Notifier]) -> None:
        self.channels = channels

    def send(self, title: str, body: str, meta: dict | None = None) -> None:
        payload_meta = meta or {}
        for channel in self.channels:
            try:
                channel.send(title=title, body=body, meta=payload_meta)
            except Exception as exc:
                logger.warning(
                    "notification_channel_failed",
                    extra={"extra_fields": {"channel": type(channel).__name__, "error": str(exc)}},
                )


def build_notification_router(settings: NotificationSettings) -> NotificationRouter:
    channels: list[Notifier] = []
    if settings.resend_api_key and settings.owner_email:
        channels.append(
            ResendEmailNotifier(
                api_key=settings.resend_api_key,
                to_email=settings.owner_email,
                from_email=settings.from_email,
            )
        )
    if settings.discord_webhook_url:
        channels.append(DiscordWebhookNotifier(webhook_url=settings.discord_webhook_url))
    if not channels:
        channels.append(ConsoleNotifier())
    return NotificationRouter(channels=channels)


class TaskNotifier:
    """Formats task lifecycle messages for a human and hands them to a router."""

    def __init__(self, router: Notifier, app_url: str) -> None:
        self.router = router
        self.app_url = app_url.rstrip("/")

    def approval_links(self, request_id: str) -> dict[str, str]:
        return {
            "Approve": f"{self.app_url}/approvals/{request_id}/approve",
            "Reject": f"{self.app_url}/approvals/{request_id}/reject",
        }

    def notify_plan_ready(self, task: Task, plan: Plan, request: ApprovalRequest) -> None:
        lines = [f"Task: {task.title}", f"Plan: {plan.summary}", ""]
        for step in plan.ordered_steps():
            lines.append(f"{step.order}. [{step.action.value}] {step.description}")
        if plan.estimated_time:
            lines.extend(["", f"Estimated time: {plan.estimated_time}"])
        if plan.risks:
            lines.extend(["", "Risks:"] + [f"- {risk}" for risk in plan.risks])
        self.router.send(
            title=f"Plan approval needed: {task.title}",
            body="\n".join(lines),
            meta={
                "task_id": task.id,
                "approval_id": request.id,
                "links": self.approval_links(request.id),
                "idempotency_key": f"plan-approval:{request.id}",
            },
        )

    def notify_execution_result(self, task: Task) -> None:
        result = task.result
        succeeded = task.status == TaskStatus.COMPLETED
        lines = [f"Task: {task.title}", f"Status: {task.status.value}"]
        if result is not None:
            for output in result.outputs:
                lines.append(f"- {output.type}: {output.url or output.data}")
            if result.error:
                lines.append(f"Error ({result.error_class or 'unknown'}): {result.error}")
        self.router.send(
            title=f"{'Shipped' if succeeded else 'Failed'}: {task.title}",
            body="\n".join(lines),
            meta={"task_id": task.id, "status": task.status.value},
        )
