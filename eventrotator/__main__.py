"""Command-line entry for eventrotator.

Subcommands:
  refresh   run one refresh cycle and print the timeline as JSON
  serve     run the relay/API server with background refresh and rotation
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from . import _init_logging


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the eventrotator CLI."""
    parser = argparse.ArgumentParser(
        prog="eventrotator",
        description="Merge iCalendar feeds into a rotating upcoming-events timeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m eventrotator refresh --config eventrotator.yaml
  python -m eventrotator serve --port 3000
        """,
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML config file (default: ./eventrotator.yaml)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("refresh", help="Run one refresh cycle and print JSON")
    serve = sub.add_parser("serve", help="Run the relay/API server")
    serve.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or EVENTROTATOR_WEB_PORT)",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the eventrotator CLI and return a process exit code."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging("DEBUG" if args.debug else os.environ.get("EVENTROTATOR_LOG_LEVEL"))

    from .core.config_manager import ConfigManager
    from .core.logging_config import configure_logging

    try:
        config = ConfigManager(config_path=Path(args.config) if args.config else None).load_full_config()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    configure_logging(debug_mode=args.debug or config.log_level == "DEBUG")

    command = args.command or "refresh"
    if command == "serve":
        from .api.server import start_server

        if args.port is not None:
            config.server_port = args.port
        start_server(config)
        return 0

    from .api.server import run_cycle

    payload = run_cycle(config)
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 1 if payload.get("error") else 0


if __name__ == "__main__":
    sys.exit(main())
