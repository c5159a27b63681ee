"""
=============================================================================
ONIONHTTP CLI ENTRY POINT
=============================================================================

Runs a small demo application that shows the onion order on the console:

    python -m onionhttp                   # 127.0.0.1:3000
    python -m onionhttp --port 8000
    python -m onionhttp --host 0.0.0.0    # containers
    python -m onionhttp --log-format json

    $ curl localhost:3000
    <h1>Hello from onionhttp</h1>

    server console:
    ----1----
    ----3----
    ----5----
    ----6----
    ----4----
    ----2----

Environment variables (ONION_*) are read first, CLI flags override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .application import Application
from .config import AppConfig
from .middleware import LoggingMiddleware, error_handler


def build_demo_app(config: AppConfig) -> Application:
    """Three nested handlers printing their before/after markers."""
    app = Application(config)
    app.use(error_handler())
    app.use(LoggingMiddleware(log_format=config.log_format))

    async def first(ctx, next):
        print("----1----")
        await next()
        print("----2----")

    async def second(ctx, next):
        print("----3----")
        await next()
        print("----4----")

    async def third(ctx, next):
        print("----5----")
        if ctx.path == "/json":
            ctx.body = {"message": "Hello from onionhttp", "query": ctx.query}
        else:
            ctx.body = "<h1>Hello from onionhttp</h1>"
        await next()
        print("----6----")

    app.use(first).use(second).use(third)
    return app


def main(argv=None) -> int:
    """
    Parse arguments, build the demo application and serve it.
    """
    parser = argparse.ArgumentParser(
        prog="onionhttp",
        description="Minimal async HTTP middleware runtime (demo server)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m onionhttp                      # Run with defaults
  python -m onionhttp --port 8000          # Custom port
  python -m onionhttp --host 0.0.0.0       # Listen on all interfaces
  python -m onionhttp --log-format json    # JSON access log
        """,
    )

    try:
        defaults = AppConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid ONION_* environment: {e}", file=sys.stderr)
        return 1

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"onionhttp {__version__}",
    )

    args = parser.parse_args(argv)

    try:
        config = AppConfig(
            host=args.host,
            port=args.port,
            backlog=defaults.backlog,
            read_timeout=defaults.read_timeout,
            proxy=defaults.proxy,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        app = build_demo_app(config)
        app.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
