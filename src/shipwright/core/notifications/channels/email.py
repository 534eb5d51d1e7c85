from __future__ import annotations

import html
import logging

from shipwright.core.http.client import request_with_retry
from shipwright.core.http.errors import ShipwrightHTTPError

logger = logging.getLogger("shipwright.notifications.email")

RESEND_API_URL = "https://api.resend.com/emails"


class ResendEmailNotifier:
    """Sends notifications to the owner through the Resend HTTP API."""

    def __init__(self, api_key: str, to_email: str, from_email: str, api_url: str = RESEND_API_URL) -> None:
        self.api_key = api_key
        self.to_email = to_email
        self.from_email = from_email
        self.api_url = api_url

    def send(self, title: str, body: str, meta: dict | None = None) -> None:
        payload = {
            "from": f"Shipwright <{self.from_email}>",
            "to": self.to_email,
            "subject": title,
            "html": render_html(title, body, (meta or {}).get("links") or {}),
        }
        try:
            request_with_retry(
                "POST",
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout_override=10.0,
                retries=1,
                idempotency_key=(meta or {}).get("idempotency_key"),
            )
        except ShipwrightHTTPError as exc:
            logger.warning("email_send_failed", extra={"extra_fields": {"subject": title, "error": str(exc)}})


def render_html(title: str, body: str, links: dict[str, str]) -> str:
    buttons = "".join(
        f'<a href="{html.escape(url, quote=True)}" style="margin-right:12px">{html.escape(label)}</a>'
        for label, url in links.items()
    )
    return (
        f"<h2>{html.escape(title)}</h2>"
        f'<pre style="white-space:pre-wrap">{html.escape(body)}</pre>'
        + (f"<p>{buttons}</p>" if buttons else "")
    )
