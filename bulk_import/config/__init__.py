from .loader import ConfigError, apply_env_overrides, load_config

__all__ = ["ConfigError", "load_config", "apply_env_overrides"]
