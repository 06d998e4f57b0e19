"""Configuration management for the UniPager control client."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .codec import MAX_FRAME_SIZE
from .constants import DEFAULT_SERVER_PORT, RECONNECT_DELAY_S

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".unipager-client"
DEFAULT_CONFIG_FILE = "config.json"
MAX_CONFIG_FILE_SIZE = 1024 * 1024


def get_default_config() -> dict[str, Any]:
    """Get default configuration values.

    Returns:
        Default configuration dictionary
    """
    return {
        "server_host": "localhost",
        "server_port": DEFAULT_SERVER_PORT,
        "reconnect_delay_s": RECONNECT_DELAY_S,
        "connect_timeout_s": 10.0,
        "max_frame_size": MAX_FRAME_SIZE,
        "settings_path": str(DEFAULT_CONFIG_DIR / "settings.json"),
        "panel_enabled": True,
        "panel_host": "localhost",
        "panel_port": 8056,
        "enable_auth": False,
        "auth_token": "",
        "enable_security_headers": True,
    }


def expand_path(path: str) -> str:
    """Expand ~ and environment variables in path.

    Args:
        path: Path string to expand

    Returns:
        Expanded absolute path
    """
    return str(Path(os.path.expandvars(path)).expanduser().resolve())


def get_config_path() -> str:
    """Get the configuration file path.

    Returns:
        Absolute path to config file
    """
    env_path = os.environ.get("UNIPAGER_CLIENT_CONFIG")
    if env_path:
        return expand_path(env_path)

    return str(DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE)


def _read_config_file(config_path: Path) -> dict[str, Any]:
    size = config_path.stat().st_size
    if size > MAX_CONFIG_FILE_SIZE:
        raise ValueError(f"file too large: {size} bytes (max {MAX_CONFIG_FILE_SIZE})")
    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def load_config() -> dict[str, Any]:
    """Load configuration from file, filling missing keys with defaults.

    A missing file is created with the defaults. An unreadable file is
    logged and ignored.
    """
    config_path = Path(get_config_path())
    config = get_default_config()

    if not config_path.is_file():
        logger.info("Config file not found, creating default at %s", config_path)
        save_config(config)
        return config

    try:
        config.update(_read_config_file(config_path))
    except (OSError, ValueError) as e:
        logger.error("Ignoring config file %s: %s", config_path, e)
        return get_default_config()

    if isinstance(config.get("settings_path"), str):
        config["settings_path"] = expand_path(config["settings_path"])
    logger.info("Loaded config from %s", config_path)
    return config


def save_config(config: dict[str, Any]) -> None:
    config_path = Path(get_config_path())
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    except OSError as e:
        logger.error("Failed to save config to %s: %s", config_path, e)
        return
    logger.info("Saved config to %s", config_path)


@dataclass(frozen=True)
class ClientConfig:
    """Settings for the protocol core."""

    server_host: str = "localhost"
    server_port: int = DEFAULT_SERVER_PORT
    reconnect_delay_s: float = RECONNECT_DELAY_S
    connect_timeout_s: float = 10.0
    max_frame_size: int = MAX_FRAME_SIZE
    settings_path: str = str(DEFAULT_CONFIG_DIR / "settings.json")

    @property
    def url(self) -> str:
        return f"ws://{self.server_host}:{self.server_port}"

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ClientConfig:
        """Build from a loaded configuration dictionary, ignoring unrelated keys."""
        defaults = cls()
        return cls(
            server_host=str(config.get("server_host", defaults.server_host)),
            server_port=int(config.get("server_port", defaults.server_port)),
            reconnect_delay_s=float(config.get("reconnect_delay_s", defaults.reconnect_delay_s)),
            connect_timeout_s=float(config.get("connect_timeout_s", defaults.connect_timeout_s)),
            max_frame_size=int(config.get("max_frame_size", defaults.max_frame_size)),
            settings_path=str(config.get("settings_path", defaults.settings_path)),
        )
