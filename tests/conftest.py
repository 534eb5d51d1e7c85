from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHIPWRIGHT_TEST_MODE", "1")
    monkeypatch.setenv("SHIPWRIGHT_STATE_DIR", str(tmp_path))
    monkeypatch.setenv("SHIPWRIGHT_LOG_TO_FILE", "off")
    for name in (
        "SHIPWRIGHT_LLM_PROVIDER",
        "SHIPWRIGHT_RESEND_API_KEY",
        "SHIPWRIGHT_DISCORD_WEBHOOK_URL",
        "SHIPWRIGHT_AGENT_CONFIG",
        "SHIPWRIGHT_SUPPRESS_DEGRADED_SKILLS",
    ):
        monkeypatch.delenv(name, raising=False)
