"""Configuration management for the roompanel server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_ROOMS_FILE = "data/rooms.json"
DEFAULT_SERVER_BIND = "0.0.0.0"  # nosec B104 - kiosk displays connect over the LAN
DEFAULT_SERVER_PORT = 8085
DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0
DEFAULT_DISPLAY_RELOAD_SECONDS = 30
DEFAULT_STATUS_PARAM = "rmspanel"
DEFAULT_SINGLE_ROOM_ID = "default"
DEFAULT_SINGLE_ROOM_NAME = "Meeting room"

_TRUTHY = ("1", "true", "yes", "on")


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

        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


def parse_status_values(raw: str) -> dict[str, str]:
    """Parse ``ROOMPANEL_STATUS_VALUES`` (``"free=green,busy=red"``) into a mapping.

    Malformed pairs are skipped with a warning.
    """
    values: dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        token, sep, value = pair.partition("=")
        token = token.strip().lower()
        value = value.strip()
        if not sep or not token or not value:
            logger.warning("Ignoring malformed status value pair %r", pair)
            continue
        values[token] = value
    return values


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

        parsed = parse_env_file(self.env_file_path)

        set_keys = []
        for key, val in parsed.items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - ROOMPANEL_ROOMS_FILE -> 'rooms_file'
        - ROOMPANEL_CALDAV_URL (+ _USERNAME, _PASSWORD, ROOMPANEL_ROOM_ID,
          ROOMPANEL_ROOM_NAME) -> 'single_room' (dict)
        - ROOMPANEL_WEB_HOST -> 'server_bind'
        - ROOMPANEL_WEB_PORT -> 'server_port' (int)
        - ROOMPANEL_FETCH_TIMEOUT -> 'fetch_timeout_seconds' (float)
        - ROOMPANEL_DISPLAY_RELOAD -> 'display_reload_seconds' (int)
        - ROOMPANEL_TIMEZONE -> 'timezone'
        - ROOMPANEL_ICAL_UTC_MARKER -> 'ical_utc_marker' ("ignore" or "honor")
        - ROOMPANEL_FILTER_REPORT_WINDOW -> 'filter_report_window' (bool)
        - ROOMPANEL_STATUS_PARAM -> 'status_param'
        - ROOMPANEL_STATUS_VALUES -> 'status_values' (dict)
        - ROOMPANEL_LOG_LEVEL -> 'log_level'
        - ROOMPANEL_DEBUG -> 'debug_logging' (bool)

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg: dict[str, Any] = {}

        rooms_file = os.environ.get("ROOMPANEL_ROOMS_FILE")
        if rooms_file:
            cfg["rooms_file"] = rooms_file

        caldav_url = os.environ.get("ROOMPANEL_CALDAV_URL")
        if caldav_url:
            cfg["single_room"] = {
                "id": os.environ.get("ROOMPANEL_ROOM_ID") or DEFAULT_SINGLE_ROOM_ID,
                "name": os.environ.get("ROOMPANEL_ROOM_NAME") or DEFAULT_SINGLE_ROOM_NAME,
                "caldavUrl": caldav_url,
                "username": os.environ.get("ROOMPANEL_CALDAV_USERNAME", ""),
                "password": os.environ.get("ROOMPANEL_CALDAV_PASSWORD", ""),
            }

        host = os.environ.get("ROOMPANEL_WEB_HOST")
        if host:
            cfg["server_bind"] = host

        port = os.environ.get("ROOMPANEL_WEB_PORT")
        if port:
            try:
                cfg["server_port"] = int(port)
            except ValueError:
                logger.warning("Invalid ROOMPANEL_WEB_PORT=%r; ignoring", port)

        timeout = os.environ.get("ROOMPANEL_FETCH_TIMEOUT")
        if timeout:
            try:
                cfg["fetch_timeout_seconds"] = float(timeout)
            except ValueError:
                logger.warning("Invalid ROOMPANEL_FETCH_TIMEOUT=%r; ignoring", timeout)

        reload_seconds = os.environ.get("ROOMPANEL_DISPLAY_RELOAD")
        if reload_seconds:
            try:
                cfg["display_reload_seconds"] = int(reload_seconds)
            except ValueError:
                logger.warning("Invalid ROOMPANEL_DISPLAY_RELOAD=%r; ignoring", reload_seconds)

        tz_name = os.environ.get("ROOMPANEL_TIMEZONE")
        if tz_name:
            cfg["timezone"] = tz_name

        utc_marker = os.environ.get("ROOMPANEL_ICAL_UTC_MARKER")
        if utc_marker:
            mode = utc_marker.strip().lower()
            if mode in ("ignore", "honor"):
                cfg["ical_utc_marker"] = mode
            else:
                logger.warning("Invalid ROOMPANEL_ICAL_UTC_MARKER=%r; ignoring", utc_marker)

        filter_report = os.environ.get("ROOMPANEL_FILTER_REPORT_WINDOW")
        if filter_report:
            cfg["filter_report_window"] = filter_report.strip().lower() in _TRUTHY

        status_param = os.environ.get("ROOMPANEL_STATUS_PARAM")
        if status_param:
            cfg["status_param"] = status_param.strip()

        status_values = os.environ.get("ROOMPANEL_STATUS_VALUES")
        if status_values:
            cfg["status_values"] = parse_status_values(status_values)

        log_level = os.environ.get("ROOMPANEL_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.strip().upper()

        debug = os.environ.get("ROOMPANEL_DEBUG")
        if debug:
            cfg["debug_logging"] = debug.strip().lower() in _TRUTHY

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        This is the main entry point for loading configuration.

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
