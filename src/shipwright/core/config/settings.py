"""Process settings and runtime agent behaviour for Shipwright."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger("shipwright.config")


def _env_flag(name: str, default: str = "off") -> bool:
    return os.getenv(name, default).strip().casefold() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class LLMSettings(BaseModel):
    provider: str = "off"
    url: str = "https://api.openai.com/v1/chat/completions"
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout_s: float = 60.0
    max_tokens: int = 4000


class NotificationSettings(BaseModel):
    owner_email: Optional[str] = None
    from_email: str = "agent@shipwright.local"
    resend_api_key: Optional[str] = None
    discord_webhook_url: Optional[str] = None
    app_url: str = "http://127.0.0.1:8000"


class IntegrationSettings(BaseModel):
    """One bridge endpoint per step action; unset means not configured."""

    bridge_urls: dict[str, str] = Field(default_factory=dict)
    bridge_token: Optional[str] = None
    poll_timeout_s: float = 120.0
    poll_interval_s: float = 5.0


class Settings(BaseModel):
    state_dir: Path
    test_mode: bool = False
    dedup_cache_max_entries: int = 512
    outcome_ledger_max_records: int = 20000
    agent_config_path: Optional[Path] = None
    llm: LLMSettings = Field(default_factory=LLMSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    integrations: IntegrationSettings = Field(default_factory=IntegrationSettings)


class AgentConfig(BaseModel):
    """Runtime behaviour flags consumed by the cron dispatcher and workflows."""

    goals: list[str] = Field(
        default_factory=lambda: [
            "Ship a project on Ethereum mainnet",
            "Ship a project on Base",
            "Ship a project on Solana",
            "Grow social presence through visible work",
        ]
    )

    plan_interval_minutes: int = 10
    execute_interval_minutes: int = 5

    daily_summary_enabled: bool = True
    daily_summary_hour: int = 14
    daily_digest_enabled: bool = True
    daily_digest_hour: int = 16
    weekly_recap_enabled: bool = True
    weekly_recap_day: str = "sun"
    weekly_recap_hour: int = 17

    email_notifications: bool = True
    task_approval_emails: bool = True

    suppress_degraded_skills: bool = False
    degraded_min_samples: int = 5
    degraded_success_rate: float = 0.2
    stats_window_days: int = 7


def default_state_dir() -> Path:
    configured = os.getenv("SHIPWRIGHT_STATE_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".shipwright"


def _bridge_urls_from_env() -> dict[str, str]:
    urls: dict[str, str] = {}
    for action in ("code", "deploy", "contract", "post", "other"):
        value = os.getenv(f"SHIPWRIGHT_BRIDGE_{action.upper()}_URL")
        if value:
            urls[action] = value
    return urls


def load_settings() -> Settings:
    config_path = os.getenv("SHIPWRIGHT_AGENT_CONFIG")
    return Settings(
        state_dir=default_state_dir(),
        test_mode=_env_flag("SHIPWRIGHT_TEST_MODE"),
        dedup_cache_max_entries=_env_int("SHIPWRIGHT_DEDUP_CACHE_MAX", 512),
        outcome_ledger_max_records=_env_int("SHIPWRIGHT_OUTCOMES_MAX", 20000),
        agent_config_path=Path(config_path).expanduser() if config_path else None,
        llm=LLMSettings(
            provider=os.getenv("SHIPWRIGHT_LLM_PROVIDER", "off").casefold(),
            url=os.getenv("SHIPWRIGHT_LLM_URL", LLMSettings().url),
            api_key=os.getenv("SHIPWRIGHT_LLM_API_KEY"),
            model=os.getenv("SHIPWRIGHT_LLM_MODEL", LLMSettings().model),
            timeout_s=_env_float("SHIPWRIGHT_LLM_TIMEOUT_S", 60.0),
            max_tokens=_env_int("SHIPWRIGHT_LLM_MAX_TOKENS", 4000),
        ),
        notifications=NotificationSettings(
            owner_email=os.getenv("SHIPWRIGHT_OWNER_EMAIL"),
            from_email=os.getenv("SHIPWRIGHT_FROM_EMAIL", NotificationSettings().from_email),
            resend_api_key=os.getenv("SHIPWRIGHT_RESEND_API_KEY"),
            discord_webhook_url=os.getenv("SHIPWRIGHT_DISCORD_WEBHOOK_URL"),
            app_url=os.getenv("SHIPWRIGHT_APP_URL", NotificationSettings().app_url),
        ),
        integrations=IntegrationSettings(
            bridge_urls=_bridge_urls_from_env(),
            bridge_token=os.getenv("SHIPWRIGHT_BRIDGE_TOKEN"),
            poll_timeout_s=_env_float("SHIPWRIGHT_POLL_TIMEOUT_S", 120.0),
            poll_interval_s=_env_float("SHIPWRIGHT_POLL_INTERVAL_S", 5.0),
        ),
    )


_ENV_OVERRIDES = {
    "daily_summary_enabled": "SHIPWRIGHT_DAILY_SUMMARY",
    "daily_digest_enabled": "SHIPWRIGHT_DAILY_DIGEST",
    "weekly_recap_enabled": "SHIPWRIGHT_WEEKLY_RECAP",
    "email_notifications": "SHIPWRIGHT_EMAIL_NOTIFICATIONS",
    "suppress_degraded_skills": "SHIPWRIGHT_SUPPRESS_DEGRADED_SKILLS",
}


def load_agent_config(path: Optional[Path] = None) -> AgentConfig:
    """Load agent behaviour from YAML, falling back to defaults when absent or invalid."""
    data: dict = {}
    if path is not None:
        try:
            with Path(path).open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning("agent_config_ignored", extra={"extra_fields": {"reason": "not a mapping"}})
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("agent_config_unreadable", extra={"extra_fields": {"path": str(path), "error": str(exc)}})

    for field_name, env_name in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is not None:
            data[field_name] = raw.strip().casefold() in {"1", "true", "yes", "on"}

    try:
        return AgentConfig.model_validate(data)
    except ValidationError as exc:
        logger.warning("agent_config_invalid", extra={"extra_fields": {"error": str(exc)}})
        return AgentConfig()
