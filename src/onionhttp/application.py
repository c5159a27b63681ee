"""
=============================================================================
APPLICATION
=============================================================================

Owns the handler list and the three template classes, and ties the
composition engine, the context factory and the response finalizer
together behind one transport entry point.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    transport ──(req, res)──► handle_request
                                 │
                                 ├─ 1. create_context(req, res)   new triad
                                 │
                                 ├─ 2. await run(ctx)             onion chain
                                 │        │
                                 │        ├─ ok ──► 3. await respond(ctx)
                                 │        │
                                 │        └─ raises ─┐
                                 │                   ▼
                                 └──────────── on_error(exc, ctx)  logged once

=============================================================================
TEMPLATES
=============================================================================

``app.context``, ``app.request`` and ``app.response`` are subclasses of
Context / Request / Response created for THIS application. They are the
shared templates: add a method or a default attribute to them and every
request of this application sees it, without affecting other applications.

    app.context.user = None            # default for every ctx of this app
    ctx.user = "alice"                 # instance attribute, this request only

Per-request state is only ever written on instances, so a request never
mutates a template.

=============================================================================
FROZEN REGISTRATION
=============================================================================

``callback()`` snapshots the handler list into the composed chain. Once
``listen()`` has started the transport, ``use()`` raises RuntimeError so
registration and serving can never interleave.

=============================================================================
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional
import asyncio
import json
import logging

from .compose import Handler, compose
from .config import AppConfig
from .context import Context
from .core.transport import Transport
from .errors import HTTPError
from .http.message import IncomingMessage
from .http.outgoing import ServerResponse
from .http.status_codes import EMPTY_BODY_STATUSES
from .request import Request
from .response import Response


logger = logging.getLogger(__name__)


class Application:
    """
    The middleware runtime.

    Usage:
        app = Application()

        async def timing(ctx, next):
            started = time.perf_counter()
            await next()
            ctx.set("X-Response-Time", f"{time.perf_counter() - started:.3f}s")

        async def hello(ctx, next):
            ctx.body = {"hello": ctx.query.get("name", "world")}

        app.use(timing).use(hello)
        app.run(port=3000)
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or AppConfig()
        self.config.validate()

        self.middleware: List[Handler] = []

        # Per-application templates
        self.context = type("Context", (Context,), {})
        self.request = type("Request", (Request,), {})
        self.response = type("Response", (Response,), {})

        self._transport: Optional[Transport] = None

    @property
    def listening(self) -> bool:
        return self._transport is not None

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def use(self, handler: Handler) -> "Application":
        """
        Append a handler. Execution order is registration order.

        Raises:
            TypeError: If ``handler`` is not callable.
            RuntimeError: If the application is already listening.
        """
        if self.listening:
            raise RuntimeError("Cannot register middleware after the application started listening")
        if not callable(handler):
            raise TypeError(f"Middleware must be callable, got {type(handler).__name__}")

        self.middleware.append(handler)
        logger.debug(f"use {getattr(handler, 'name', None) or getattr(handler, '__name__', '-')}")
        return self

    # =========================================================================
    # TRANSPORT ENTRY POINT
    # =========================================================================

    def callback(self):
        """
        Build the transport entry point ``async handle_request(req, res)``.

        The handler list is composed (and thereby snapshotted) here.
        """
        run = compose(self.middleware)

        async def handle_request(req: IncomingMessage, res: ServerResponse) -> None:
            ctx = self.create_context(req, res)
            await self._handle_request(ctx, run)

        return handle_request

    async def _handle_request(self, ctx: Context, run) -> None:
        try:
            await run(ctx)
            await respond(ctx)
        except Exception as exc:
            self.on_error(exc, ctx)

    def create_context(self, req: IncomingMessage, res: ServerResponse) -> Context:
        """
        Build a fresh, cross-linked (context, request, response) triad.
        """
        request = self.request(self, req, res)
        response = self.response(self, req, res)
        context = self.context(self, req, res, request, response)

        request.ctx = response.ctx = context
        request.response = response
        response.request = request
        return context

    def on_error(self, exc: Exception, ctx: Optional[Context] = None) -> None:
        """
        Top-level catch for a failed exchange.

        Logs the failure; the exchange is abandoned and the transport closes
        the connection. Override to report errors elsewhere. Exposed
        HTTPErrors (4xx by default) are logged without a traceback.
        """
        where = f"{ctx.method} {ctx.url}" if ctx is not None else "-"
        if isinstance(exc, HTTPError) and exc.expose:
            logger.warning(f"{where}: {exc.status_code} {exc.message}")
            return
        logger.error(f"Unhandled error in {where}: {type(exc).__name__}: {exc}", exc_info=exc)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def listen(self, host: Optional[str] = None, port: Optional[int] = None) -> asyncio.AbstractServer:
        """
        Bind the transport and start dispatching exchanges.

        Args:
            host: Override ``config.host``.
            port: Override ``config.port`` (0 picks a free port).

        Returns:
            The running asyncio server.
        """
        if self.listening:
            raise RuntimeError("Application is already listening")

        overrides: Dict[str, Any] = {}
        if host is not None:
            overrides["host"] = host
        if port is not None:
            overrides["port"] = port
        config = replace(self.config, **overrides)
        config.validate()

        self._setup_logging(config)

        transport = Transport(config, self.callback())
        server = await transport.start()
        self._transport = transport
        return server

    @property
    def address(self):
        """(host, port) the transport is bound to, None when not listening."""
        return self._transport.address if self._transport else None

    async def close(self) -> None:
        """Stop the transport. Registration opens again afterwards."""
        if self._transport is not None:
            await self._transport.close()
            self._transport = None

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Listen and serve until interrupted (blocking).
        """
        async def serve() -> None:
            server = await self.listen(host, port)
            self._print_startup_banner()
            try:
                await server.serve_forever()
            finally:
                await self.close()

        try:
            asyncio.run(serve())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def _print_startup_banner(self) -> None:
        host, port = self.address
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"║  {self.config.server_name} running")
        print(f"║  http://{host}:{port}")
        print(f"║  {len(self.middleware)} middleware registered")
        print("║  Press Ctrl+C to stop")
        print("╚══════════════════════════════════════════════════════════════╝")
        print()

    def _setup_logging(self, config: AppConfig) -> None:
        """Configure logging based on config."""
        level = getattr(logging, config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("onionhttp").setLevel(level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server_name": self.config.server_name,
            "proxy": self.config.proxy,
            "middleware": len(self.middleware),
        }

    def __repr__(self) -> str:
        return f"<Application middleware={len(self.middleware)} listening={self.listening}>"


# =============================================================================
# RESPONSE FINALIZER
# =============================================================================

def serialize_body(body: Any, indent: Optional[int] = None) -> bytes:
    """
    Encode a response body for the wire.

        str                         → UTF-8 bytes, unchanged text
        bytes / bytearray / memory  → as-is
        None                        → b""
        anything else               → JSON text

    Raises:
        TypeError: If a structured body is not JSON serializable.
    """
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    return json.dumps(body, indent=indent, ensure_ascii=False).encode("utf-8")


async def respond(ctx: Context) -> None:
    """
    Commit ``ctx.body`` to the transport and close the response stream.

    Skipped when ``ctx.respond`` is False or the raw response was already
    ended by a handler. Bodies are dropped for HEAD requests and for
    204/205/304 statuses.
    """
    if not ctx.respond:
        return

    res = ctx.res
    if res.finished:
        logger.debug("Response already ended by a handler, skipping finalizer")
        return

    if ctx.status in EMPTY_BODY_STATUSES:
        await res.end(include_body=False)
        return

    body = ctx.body
    if body is None:
        # Nothing set a body (typically the default 404): send the reason phrase
        ctx.type = "text"
        body = ctx.message

    payload = serialize_body(body, indent=ctx.app.config.json_indent)

    if ctx.method == "HEAD":
        await res.end(payload, include_body=False)
        return

    await res.end(payload)
