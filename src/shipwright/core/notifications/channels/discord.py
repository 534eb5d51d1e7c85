from __future__ import annotations

import logging

from shipwright.core.http.client import request_with_retry
from shipwright.core.http.errors import ShipwrightHTTPError

logger = logging.getLogger("shipwright.notifications.discord")

_MAX_CONTENT_CHARS = 1900


class DiscordWebhookNotifier:
    def __init__(self, webhook_url: str) -> None:
        self.webhook_url = webhook_url

    def send(self, title: str, body: str, meta: dict | None = None) -> None:
        content = f"**{title}**\n{body}"
        links = (meta or {}).get("links") or {}
        for label, url in links.items():
            content += f"\n{label}: {url}"
        payload = {"content": content[:_MAX_CONTENT_CHARS]}
        try:
            request_with_retry(
                "POST",
                self.webhook_url,
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout_override=5.0,
                retries=1,
                redact_url=True,
            )
        except ShipwrightHTTPError as exc:
            logger.warning("discord_send_failed", extra={"extra_fields": {"error": str(exc)}})
