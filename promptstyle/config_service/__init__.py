"""Settings loader shared by the CLI and the session layer."""

from .config_service import ConfigError, LoadedConfig, deep_get, load_config, resolve_state_dir

__all__ = ["ConfigError", "LoadedConfig", "deep_get", "load_config", "resolve_state_dir"]
