"""Configuration management for insightbot_lite server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SERVER_BIND = "0.0.0.0"  # nosec B104 - default bind; override via env
DEFAULT_SERVER_PORT = 3000
DEFAULT_DATABASE_PATH = "data.sqlite"

# TRMNL polls /markup at the rate we hand back with each response
DEFAULT_REFRESH_RATE_SECONDS = 1800
DEFAULT_ERROR_REFRESH_RATE_SECONDS = 300


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#") or "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def _env_truthy(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - INSIGHTBOT_WEB_HOST or INSIGHTBOT_SERVER_BIND -> 'server_bind'
        - INSIGHTBOT_WEB_PORT, INSIGHTBOT_SERVER_PORT or PORT -> 'server_port' (int)
        - INSIGHTBOT_DB_PATH or DB_PATH -> 'database_path'
        - TRMNL_CLIENT_ID / TRMNL_CLIENT_SECRET -> OAuth client credentials
        - INSIGHTBOT_REFRESH_RATE -> 'refresh_rate_seconds' (int)
        - INSIGHTBOT_ERROR_REFRESH_RATE -> 'error_refresh_rate_seconds' (int)
        - INSIGHTBOT_DEBUG -> 'debug_logging' (bool)

        Returns:
            Configuration dictionary with defaults filled in
        """
        cfg: dict[str, Any] = {
            "server_bind": _first_env("INSIGHTBOT_WEB_HOST", "INSIGHTBOT_SERVER_BIND")
            or DEFAULT_SERVER_BIND,
            "server_port": DEFAULT_SERVER_PORT,
            "database_path": _first_env("INSIGHTBOT_DB_PATH", "DB_PATH") or DEFAULT_DATABASE_PATH,
            "trmnl_client_id": os.environ.get("TRMNL_CLIENT_ID"),
            "trmnl_client_secret": os.environ.get("TRMNL_CLIENT_SECRET"),
            "refresh_rate_seconds": DEFAULT_REFRESH_RATE_SECONDS,
            "error_refresh_rate_seconds": DEFAULT_ERROR_REFRESH_RATE_SECONDS,
            "debug_logging": _env_truthy("INSIGHTBOT_DEBUG"),
        }

        int_settings = {
            "server_port": ("INSIGHTBOT_WEB_PORT", "INSIGHTBOT_SERVER_PORT", "PORT"),
            "refresh_rate_seconds": ("INSIGHTBOT_REFRESH_RATE",),
            "error_refresh_rate_seconds": ("INSIGHTBOT_ERROR_REFRESH_RATE",),
        }
        for key, names in int_settings.items():
            raw = _first_env(*names)
            if raw is None:
                continue
            try:
                cfg[key] = int(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", names[0], raw)

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
