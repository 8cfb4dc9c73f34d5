"""
CONFIG_LOADER
=============

Configuration management for mindCore.

Handles:
- Server settings (port, host, auth token, logging)
- Storage settings (backend selection, data dir, expiry sweep)
- LLM backend settings
- Rate limits for the HTTP and MCP surfaces

Sources, in increasing precedence:
1. Dataclass defaults
2. Optional JSON config file
3. Environment variables (PORT, DATA_DIR, LLM_API_KEY, ...)

Usage:
    from mind_core.config import get_config_manager, build_session_store

    config = get_config_manager().config
    store = build_session_store(config)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..storage import FileSessionStore, InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ServerConfig:
    """HTTP server settings."""
    port: int = 8080
    host: str = "0.0.0.0"
    api_token: str = ""
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "port": self.port,
            "host": self.host,
            "api_token": self.api_token,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ServerConfig":
        return cls(
            port=data.get("port", 8080),
            host=data.get("host", "0.0.0.0"),
            api_token=data.get("api_token", ""),
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )


@dataclass
class StorageConfig:
    """Session persistence settings.

    A file store is used when use_file_store is set or data_dir is given;
    otherwise sessions live in memory only.
    """
    data_dir: str = ""
    use_file_store: bool = False
    session_ttl_hours: int = 24
    cleanup_interval_seconds: int = 3600  # 0 disables the background sweep

    def to_dict(self) -> Dict:
        return {
            "data_dir": self.data_dir,
            "use_file_store": self.use_file_store,
            "session_ttl_hours": self.session_ttl_hours,
            "cleanup_interval_seconds": self.cleanup_interval_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "StorageConfig":
        return cls(
            data_dir=data.get("data_dir", ""),
            use_file_store=data.get("use_file_store", False),
            session_ttl_hours=data.get("session_ttl_hours", 24),
            cleanup_interval_seconds=data.get("cleanup_interval_seconds", 3600),
        )


@dataclass
class LLMConfig:
    """OpenAI-compatible chat completions backend. Empty api_key or
    base_url means the deterministic fallback is used."""
    api_key: str = ""
    base_url: str = ""
    model: str = "gpt-4.1"
    timeout_seconds: int = 15
    max_tokens: int = 1024

    def to_dict(self) -> Dict:
        return {
            "api_key": self.api_key,
            "base_url": self.base_url,
            "model": self.model,
            "timeout_seconds": self.timeout_seconds,
            "max_tokens": self.max_tokens,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "LLMConfig":
        return cls(
            api_key=data.get("api_key", ""),
            base_url=data.get("base_url", ""),
            model=data.get("model", "gpt-4.1"),
            timeout_seconds=data.get("timeout_seconds", 15),
            max_tokens=data.get("max_tokens", 1024),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_url)


@dataclass
class RateLimitConfig:
    """Per-client request limits. A value <= 0 disables the limit."""
    http_requests_per_minute: int = 120
    mcp_requests_per_minute: int = 60

    def to_dict(self) -> Dict:
        return {
            "http_requests_per_minute": self.http_requests_per_minute,
            "mcp_requests_per_minute": self.mcp_requests_per_minute,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "RateLimitConfig":
        return cls(
            http_requests_per_minute=data.get("http_requests_per_minute", 120),
            mcp_requests_per_minute=data.get("mcp_requests_per_minute", 60),
        )


@dataclass
class AppConfig:
    """Top-level configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)

    def to_dict(self) -> Dict:
        return {
            "server": self.server.to_dict(),
            "storage": self.storage.to_dict(),
            "llm": self.llm.to_dict(),
            "rate_limits": self.rate_limits.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "AppConfig":
        return cls(
            server=ServerConfig.from_dict(data.get("server", {})),
            storage=StorageConfig.from_dict(data.get("storage", {})),
            llm=LLMConfig.from_dict(data.get("llm", {})),
            rate_limits=RateLimitConfig.from_dict(data.get("rate_limits", {})),
        )

    @classmethod
    def create_default(cls) -> "AppConfig":
        return cls()


# ============================================================================
# ENVIRONMENT OVERRIDES
# ============================================================================

def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _set_int(target: Any, attr: str, name: str, value: str) -> None:
    try:
        setattr(target, attr, int(value))
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}")


def apply_env_overrides(config: AppConfig, environ: Optional[Dict[str, str]] = None) -> AppConfig:
    """
    Override config fields from environment variables. Empty values are
    ignored; unparseable integers are logged and ignored.

    Returns the same config object for chaining.
    """
    env = os.environ if environ is None else environ

    overrides: Dict[str, Callable[[str], None]] = {
        "PORT": lambda v: _set_int(config.server, "port", "PORT", v),
        "HOST": lambda v: setattr(config.server, "host", v),
        "API_TOKEN": lambda v: setattr(config.server, "api_token", v),
        "LOG_LEVEL": lambda v: setattr(config.server, "log_level", v.upper()),
        "DATA_DIR": lambda v: setattr(config.storage, "data_dir", v),
        "USE_FILE_STORE": lambda v: setattr(config.storage, "use_file_store", _parse_bool(v)),
        "LLM_API_KEY": lambda v: setattr(config.llm, "api_key", v),
        "LLM_BASE_URL": lambda v: setattr(config.llm, "base_url", v),
        "LLM_MODEL": lambda v: setattr(config.llm, "model", v),
        "HTTP_RATE_LIMIT_PER_MINUTE": lambda v: _set_int(
            config.rate_limits, "http_requests_per_minute", "HTTP_RATE_LIMIT_PER_MINUTE", v),
        "MCP_RATE_LIMIT_PER_MINUTE": lambda v: _set_int(
            config.rate_limits, "mcp_requests_per_minute", "MCP_RATE_LIMIT_PER_MINUTE", v),
    }

    for name, apply in overrides.items():
        value = env.get(name, "")
        if value:
            apply(value)

    return config


# ============================================================================
# CONFIG MANAGER
# ============================================================================

class ConfigManager:
    """Load configuration from file and environment."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path or DEFAULT_CONFIG_PATH)
        self.config: AppConfig = AppConfig.create_default()

    def load(self, environ: Optional[Dict[str, str]] = None) -> AppConfig:
        """Load the JSON file if present, then apply environment overrides."""
        config = AppConfig.create_default()

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                config = AppConfig.from_dict(data)
                logger.info(f"Loaded config from {self.config_path}")
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load config {self.config_path}: {e}, using defaults")
                config = AppConfig.create_default()

        self.config = apply_env_overrides(config, environ)
        return self.config

    def save(self) -> None:
        """Write the current configuration to the config file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self.config.to_dict(), f, indent=2)


# ============================================================================
# STORE SELECTION
# ============================================================================

def build_session_store(config: AppConfig) -> SessionStore:
    """Pick the session backend for a configuration."""
    storage = config.storage
    if storage.use_file_store or storage.data_dir:
        logger.info(f"Using file session store at {storage.data_dir or FileSessionStore.DEFAULT_DATA_DIR}")
        return FileSessionStore(storage.data_dir or None)
    logger.info("Using in-memory session store")
    return InMemorySessionStore()


# ============================================================================
# GLOBAL ACCESS
# ============================================================================

_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[str] = None) -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(config_path)
        _config_manager.load()
    return _config_manager


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load a fresh configuration without touching the global manager."""
    return ConfigManager(config_path).load()
