"""
Command-line entry point.

    python -m guestbook                     # 0.0.0.0:8080, shipped assets
    python -m guestbook --port 3000
    python -m guestbook --templates ./templates --static ./static
    guestbook --log-level DEBUG             # console script, same options

Exit status: 0 after a clean shutdown (SIGINT/SIGTERM), 1 when startup
fails (bad option value, templates that do not load, port in use).
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app
from .config import LOG_LEVELS, ServerConfig
from .errors import GuestbookError
from .server import configure_logging


logger = logging.getLogger("guestbook")


def build_parser() -> argparse.ArgumentParser:
    defaults = ServerConfig()
    parser = argparse.ArgumentParser(
        prog="guestbook",
        description="In-memory web guestbook with a JSON API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m guestbook                        # listen on 0.0.0.0:8080
  python -m guestbook --host 127.0.0.1 -p 3000
  python -m guestbook --workers 8            # 8 workers up front, up to 16
        """,
    )
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Interface to bind (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help=f"Worker threads started up front; the pool may grow to twice "
             f"this (default: {defaults.min_workers}, max {defaults.max_workers})",
    )
    parser.add_argument(
        "--templates", "-t",
        default=str(defaults.template_dir),
        help="Directory holding the *.html templates",
    )
    parser.add_argument(
        "--static", "-s",
        default=str(defaults.static_dir),
        help="Directory served under /static/",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"guestbook {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    config = ServerConfig(
        host=args.host,
        port=args.port,
        template_dir=args.templates,
        static_dir=args.static,
        log_level=args.log_level,
    )
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = config_from_args(args)
        config.validate()
        server = create_app(config)
        server.bind()
    except (GuestbookError, ValueError, OSError) as e:
        logger.critical("startup failed: %s", e)
        return 1

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
