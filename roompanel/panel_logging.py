"""
Central logging configuration for roompanel.

Suppresses verbose debug logs from third-party libraries while keeping
roompanel's own diagnostics, and stamps every record with the request
correlation id.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Imported lazily: the middleware module pulls in aiohttp
        from .middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_panel_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for roompanel.

    Args:
        debug_mode: Whether to enable debug logging for roompanel modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        ROOMPANEL_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ROOMPANEL_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("ROOMPANEL_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("ROOMPANEL_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    # Keep the colorlog handler installed by roompanel._init_logging if present
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = {
        "aiohttp.access": logging.WARNING,
        "aiohttp.server": logging.WARNING,
        "aiohttp.web": logging.INFO,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "asyncio": logging.WARNING,
    }

    panel_level = logging.DEBUG if final_debug else logging.INFO
    for module in (
        "roompanel",
        "roompanel.calendar.ical_parser",
        "roompanel.calendar.caldav_fetcher",
        "roompanel.domain.room_status",
    ):
        logger_config[module] = panel_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for roompanel modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}

    for logger_name in ("roompanel", "aiohttp.access", "httpx", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)

    return status
