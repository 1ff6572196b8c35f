"""
=============================================================================
COMMAND LINE
=============================================================================

    python -m userservice                       # 0.0.0.0:8080
    python -m userservice --port 9000
    python -m userservice --workers 8           # 8 workers, up to 16
    python -m userservice --log-format json     # JSON access log

Unset flags fall back to USERSERVICE_* environment variables, then to the
ServerConfig defaults. If the port cannot be bound the process exits
with status 1.

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .app import create_app
from .config import ServerConfig, LOG_FORMATS, LOG_LEVELS


logger = logging.getLogger("userservice")


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userservice",
        description="In-memory user CRUD service over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m userservice                       # Run with defaults
  python -m userservice --port 3000           # Custom port
  python -m userservice --host 127.0.0.1      # Localhost only
  python -m userservice --workers 8           # 8 worker threads
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help=f"Number of worker threads, max will be 2x this "
             f"(default: {defaults.min_workers}-{defaults.max_workers})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userservice {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Invalid environment configuration: {e}", file=sys.stderr)
        sys.exit(2)

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    config = defaults
    config.host = args.host
    config.port = args.port
    config.log_level = args.log_level
    config.log_format = args.log_format
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2

    try:
        server = create_app(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        logger.critical(f"Cannot start server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
