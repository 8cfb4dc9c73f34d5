"""
Configuration management for mindCore.
"""

from .loader import (
    AppConfig,
    ConfigManager,
    LLMConfig,
    RateLimitConfig,
    ServerConfig,
    StorageConfig,
    apply_env_overrides,
    build_session_store,
    get_config_manager,
    load_config,
)

__all__ = [
    "AppConfig",
    "ConfigManager",
    "LLMConfig",
    "RateLimitConfig",
    "ServerConfig",
    "StorageConfig",
    "apply_env_overrides",
    "build_session_store",
    "get_config_manager",
    "load_config",
]
