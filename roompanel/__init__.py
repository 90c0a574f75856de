"""roompanel - live room-booking status for meeting-room displays.

The package keeps top-level imports light; the aiohttp server is imported
only when it is started.
"""

__version__ = "0.1.0"

from typing import Any, Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    This sets a colorized formatter and level so that startup messages are
    visible on the console. Callers may adjust the level later (e.g. from config).

    The ROOMPANEL_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on") forces DEBUG verbosity to surface fetcher and parser logs
    during troubleshooting without changing code.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("ROOMPANEL_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   [request id] logger.name: message
        fmt = (
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s "
            "[%(request_id)s] %(name)s: %(message)s"
        )
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))

        from .panel_logging import CorrelationIdFilter

        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def _load_config(args: Optional[object]) -> dict[str, Any]:
    """Build the runtime config from the environment plus command line overrides."""
    import logging

    from .core.config_manager import ConfigManager

    logger = logging.getLogger(__name__)
    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            try:
                cfg["server_port"] = int(port)
                logger.debug("Applied command line port override: %d", cfg["server_port"])
            except (ValueError, TypeError) as e:
                logger.warning("Invalid port value from command line '%s': %s", port, e)

        rooms_file = getattr(args, "rooms_file", None)
        if rooms_file:
            cfg["rooms_file"] = str(rooms_file)
            logger.debug("Applied command line rooms file override: %s", rooms_file)

    cfg_level = cfg.get("log_level")
    if isinstance(cfg_level, str):
        logger.info("Applying configured log_level=%s", cfg_level)
        logging.getLogger().setLevel(getattr(logging, cfg_level.upper(), logging.INFO))

    return cfg


def run_server(args: Optional[object] = None) -> None:
    """Start the roompanel server.

    The server module is imported through importlib so that import-time
    errors are reported clearly when running ``python -m roompanel``.

    Args:
        args: Optional command line arguments namespace containing --port and --rooms-file
    """
    import importlib
    import logging
    import os

    _init_logging(os.environ.get("ROOMPANEL_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    try:
        server = importlib.import_module("roompanel.api.server")
    except ImportError:
        logger.exception("Failed to import roompanel.api.server")
        raise

    cfg = _load_config(args)
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: cfg.get(k) for k in ("rooms_file", "log_level", "server_bind", "server_port")},
    )

    logger.info("Starting roompanel server")
    server.start_server(cfg)


def run_probe(room_id: str, args: Optional[object] = None) -> int:
    """Resolve one room's occupancy once and print it as JSON.

    Useful for checking calendar credentials from a shell without starting
    the server.

    Returns:
        Process exit code (0 on success, 1 for an unknown room)
    """
    import asyncio
    import json
    import logging
    import os
    import sys

    _init_logging(os.environ.get("ROOMPANEL_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .api.server import _event_to_api_model, build_room_store, build_status_service
    from .core.http_client import close_all_clients
    from .domain.status_signal import status_for

    cfg = _load_config(args)
    room = build_room_store(cfg).get_room(room_id)
    if room is None:
        logger.error("Unknown room %r", room_id)
        return 1

    async def _probe() -> dict[str, Any]:
        try:
            result = await build_status_service(cfg).resolve(room.calendar_source)
        finally:
            await close_all_clients()
        return {
            "room": room.to_public_dict(),
            "events": [_event_to_api_model(ev) for ev in result.events],
            "currentEvent": _event_to_api_model(result.current_event) if result.current_event else None,
            "nextEvent": _event_to_api_model(result.next_event) if result.next_event else None,
            "isFree": result.is_free,
            "remainingMinutes": result.remaining_minutes,
            "status": status_for(result.is_free).value,
        }

    json.dump(asyncio.run(_probe()), sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0
