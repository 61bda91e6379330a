"""
=============================================================================
STATICSERVE CLI ENTRY POINT
=============================================================================

    staticserve 8080                       # serve the current directory
    staticserve 8080 --root ./public       # serve ./public
    staticserve 8080 --workers 1           # strictly one client at a time
    python -m staticserve 8080             # same thing, without installing

Then, from another terminal:

    $ telnet localhost 8080
    GET /index.html HTTP/1.0
    HTTP/1.0 200 OK
    Content-Type: text/html

    <html>...

=============================================================================
EXIT CODES
=============================================================================

    0  clean shutdown (SIGINT / SIGTERM)
    1  usage error: wrong arguments, bad option value, invalid config
    2  could not create the listening socket
    3  could not bind (port in use, privileged, or out of range)
    4  could not listen

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import ServerConfig, LOG_LEVELS
from .errors import SUCCESS, USAGE_ERROR, ServerStartupError
from .server import StaticFileServer


logger = logging.getLogger("staticserve")


class ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; 2 means socket failure here."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(USAGE_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="staticserve",
        description="Serve files over TCP to browsers and telnet clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staticserve 8080                     # Serve the current directory
  staticserve 8080 --root ./public     # Serve ./public
  staticserve 8080 --workers 1         # Serve one client at a time
  staticserve 8080 -w 4 -W 32          # Start 4 workers, grow to 32
        """,
    )

    parser.add_argument(
        "port",
        type=int,
        help="TCP port to listen on",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Seconds a client may stay silent before being dropped (default: 30)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT / FRAMING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve files from (default: current directory)",
    )

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Bytes per read (default: 80)",
    )

    parser.add_argument(
        "--max-request-size",
        type=int,
        default=None,
        help="Largest request accepted, in bytes (default: 8192)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE / LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads started up front (default: 4)",
    )

    parser.add_argument(
        "--max-workers", "-W",
        type=int,
        default=None,
        help="Most worker threads the pool may grow to "
             "(default: same as --workers when given, else 16)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserve {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Layer the command-line flags over the environment.

    --workers alone pins the pool at that size; --max-workers lets it grow.
    """
    return ServerConfig.from_env(
        port=args.port,
        host=args.host,
        root_dir=args.root,
        timeout=args.timeout,
        chunk_size=args.chunk_size,
        max_request_size=args.max_request_size,
        min_workers=args.workers,
        max_workers=args.max_workers or args.workers,
        log_level=args.log_level,
    )


def main(argv=None) -> int:
    """
    Parse arguments, build the server, run it.

    Returns:
        The process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        server = StaticFileServer(build_config(args))
    except ValueError as e:
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return USAGE_ERROR

    try:
        server.run()
    except ServerStartupError as e:
        logger.error(f"{e} (exit {e.exit_code})")
        return e.exit_code

    return SUCCESS


if __name__ == "__main__":
    sys.exit(main())
