from __future__ import annotations

from shipwright.core.http.errors import ShipwrightHTTPNetworkError
from shipwright.core.notifications.channels.discord import DiscordWebhookNotifier
from shipwright.core.notifications.channels.email import ResendEmailNotifier, render_html


def test_discord_notifier_http_failure_is_graceful(monkeypatch) -> None:
    notifier = DiscordWebhookNotifier(webhook_url="https://discord.example/webhook")

    def always_fail(*args, **kwargs):
        raise ShipwrightHTTPNetworkError("boom")

    monkeypatch.setattr("shipwright.core.notifications.channels.discord.request_with_retry", always_fail)

    notifier.send(title="Test", body="Body", meta={"links": {"Approve": "https://x/approve"}})


def test_resend_payload(monkeypatch) -> None:
    calls: list[dict] = []

    def capture(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})

    monkeypatch.setattr("shipwright.core.notifications.channels.email.request_with_retry", capture)
    notifier = ResendEmailNotifier(api_key="re_test", to_email="owner@example.com", from_email="bot@example.com")

    notifier.send("Plan approval needed: <Docs>", "Steps", meta={"idempotency_key": "plan-approval:p1"})

    call = calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.resend.com/emails"
    assert call["headers"]["Authorization"] == "Bearer re_test"
    assert call["idempotency_key"] == "plan-approval:p1"
    assert call["json"]["to"] == "owner@example.com"
    assert call["json"]["subject"] == "Plan approval needed: <Docs>"
    assert "&lt;Docs&gt;" in call["json"]["html"]


def test_render_html_escapes_links() -> None:
    rendered = render_html("Title", "Body", {"Approve": "https://x/a?b=1&c=2"})

    assert 'href="https://x/a?b=1&amp;c=2"' in rendered
    assert ">Approve</a>" in rendered
