"""
=============================================================================
TINYWEB CLI ENTRY POINT
=============================================================================

=============================================================================
USAGE
=============================================================================

    # Listen on localhost:8000 with the default 8 threads
    python -m tinyweb localhost:8000

    # All interfaces, 16 threads
    tinyweb 0.0.0.0:8000 --threads 16

    # Serve another directory, error pages from a third one
    tinyweb :8000 --root ./public --error-pages ./errors

Settings not given on the command line come from TINYWEB_* environment
variables, then from the ServerConfig defaults.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, parse_address
from .server import WebServer


DEFAULT_THREADS = 8


def parse_threads(value: str) -> int:
    """Thread count from the command line; anything unusable means the default."""
    try:
        threads = int(value)
    except ValueError:
        return DEFAULT_THREADS
    return threads if threads > 0 else DEFAULT_THREADS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinyweb",
        description="A tiny concurrent web server with static files and CGI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tinyweb localhost:8000                # 8 worker threads, ./assets
  tinyweb 0.0.0.0:8000 -t 16            # 16 worker threads
  tinyweb :8000 --root ./public         # Serve another directory
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "address",
        metavar="ADDRESS",
        help="Address to listen on, as host:port",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--threads", "-t",
        type=parse_threads,
        default=None,
        help=f"Number of worker threads (default: {DEFAULT_THREADS})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve (default: assets)",
    )

    parser.add_argument(
        "--error-pages", "-e",
        default=None,
        help="Directory holding 400/404/500/501.html (default: the root)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tinyweb {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Overlay command-line arguments on the environment configuration."""
    config = ServerConfig.from_env()
    config.host, config.port = parse_address(args.address)

    if args.threads is not None:
        config.threads = args.threads
    if args.root is not None:
        config.document_root = args.root
    if args.error_pages is not None:
        config.error_pages_dir = args.error_pages
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        server = WebServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"Run webserver {args.address} failed for {e}.", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
