"""
Configuration management for Mindsort.

Uses XDG base directories:
- Config: ~/.config/mindsort/config.toml
- Data: ~/mindsort/ (database lives here)
"""

from pathlib import Path
from typing import Any
import copy
import os

# XDG defaults
DEFAULT_CONFIG_HOME = Path.home() / ".config"
DEFAULT_DATA_HOME = Path.home() / "mindsort"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config_dir() -> Path:
    """Get the config directory (XDG_CONFIG_HOME/mindsort)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", DEFAULT_CONFIG_HOME))
    return base / "mindsort"


def get_mindsort_home() -> Path:
    """Get the mindsort data directory (~/mindsort or MINDSORT_HOME)."""
    if env_home := os.environ.get("MINDSORT_HOME"):
        return Path(env_home)
    return DEFAULT_DATA_HOME


def get_config_path() -> Path:
    """Get the path to config.toml."""
    return get_config_dir() / "config.toml"


def get_db_path() -> Path:
    """Get the path to mindsort.db."""
    return get_mindsort_home() / "mindsort.db"


def ensure_dirs() -> None:
    """Ensure all required directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_mindsort_home().mkdir(parents=True, exist_ok=True)


def load_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from config.toml.

    Values from the file are merged over the defaults, so callers can
    always rely on every section being present.
    """
    config_path = path or get_config_path()
    config = get_default_config()

    if not config_path.exists():
        return config

    # Lazy import tomli only when needed
    import tomli

    with open(config_path, "rb") as f:
        return merge_config(config, tomli.load(f))


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "mindsort": {
            "home": str(get_mindsort_home()),
        },
        "user": {
            "id": "local",
        },
        "llm": {
            "provider": "openrouter",  # or "anthropic", "openai"
            "temperature": 0.3,
            "timeout": 30.0,
        },
        "billing": {
            "ingest_url": "https://test.dodopayments.com/events/ingest",
            "event_name": "note.created",
        },
        "auth": {
            "tokens": {},
        },
        "api": {
            "host": "127.0.0.1",
            "port": 8000,
        },
        "logging": {
            "level": "INFO",
        },
    }


def get_local_owner(config: dict[str, Any] | None = None) -> str:
    """Owner id used by single-user surfaces (CLI, MCP)."""
    config = config or load_config()
    return str(config.get("user", {}).get("id") or "local")
