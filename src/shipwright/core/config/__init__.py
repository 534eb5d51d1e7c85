from .settings import AgentConfig, Settings, default_state_dir, load_agent_config, load_settings

__all__ = ["AgentConfig", "Settings", "default_state_dir", "load_agent_config", "load_settings"]
