from __future__ import annotations

from shipwright.core.config.settings import AgentConfig, load_agent_config, load_settings


def test_load_agent_config_from_yaml(tmp_path) -> None:
    sample = tmp_path / "agent.yaml"
    sample.write_text("plan_interval_minutes: 15\ndaily_summary_hour: 9\ngoals:\n  - ship weekly\n")

    cfg = load_agent_config(sample)

    assert isinstance(cfg, AgentConfig)
    assert cfg.plan_interval_minutes == 15
    assert cfg.daily_summary_hour == 9
    assert cfg.goals == ["ship weekly"]
    assert cfg.execute_interval_minutes == 5


def test_env_flags_override_yaml(tmp_path, monkeypatch) -> None:
    sample = tmp_path / "agent.yaml"
    sample.write_text("daily_summary_enabled: true\n")
    monkeypatch.setenv("SHIPWRIGHT_DAILY_SUMMARY", "off")
    monkeypatch.setenv("SHIPWRIGHT_SUPPRESS_DEGRADED_SKILLS", "1")

    cfg = load_agent_config(sample)

    assert cfg.daily_summary_enabled is False
    assert cfg.suppress_degraded_skills is True


def test_broken_or_missing_config_falls_back_to_defaults(tmp_path) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("plan_interval_minutes: [unclosed\n")
    invalid = tmp_path / "invalid.yaml"
    invalid.write_text("plan_interval_minutes: soon\n")

    assert load_agent_config(broken) == AgentConfig()
    assert load_agent_config(invalid) == AgentConfig()
    assert load_agent_config(tmp_path / "missing.yaml") == AgentConfig()


def test_load_settings_reads_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("SHIPWRIGHT_BRIDGE_DEPLOY_URL", "http://bridge.local/deploy")
    monkeypatch.setenv("SHIPWRIGHT_LLM_PROVIDER", "OpenAI")

    settings = load_settings()

    assert settings.state_dir == tmp_path
    assert settings.test_mode is True
    assert settings.integrations.bridge_urls == {"deploy": "http://bridge.local/deploy"}
    assert settings.llm.provider == "openai"
