"""Command-line entry for roompanel.

``python -m roompanel`` starts the display server; ``--probe ROOM_ID``
resolves a single room once and prints the result.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_probe, run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for roompanel CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="roompanel",
        description="roompanel - meeting room status server for kiosk displays",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m roompanel                              # Start server on default port (8085)
  python -m roompanel --port 3000                  # Start server on port 3000
  python -m roompanel --rooms-file data/rooms.json # Serve rooms from a registry file
  python -m roompanel --probe room-1               # Print room-1's status and exit
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8085, or from ROOMPANEL_WEB_PORT env var)",
    )
    parser.add_argument(
        "--rooms-file",
        metavar="PATH",
        help="Room registry JSON file (default: data/rooms.json, or from ROOMPANEL_ROOMS_FILE)",
    )
    parser.add_argument(
        "--probe",
        metavar="ROOM_ID",
        help="Resolve the given room once, print its status as JSON and exit",
    )

    return parser


def main() -> NoReturn:
    """Run the roompanel CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    if args.probe:
        sys.exit(run_probe(args.probe, args))

    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
