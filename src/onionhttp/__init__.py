"""
=============================================================================
ONIONHTTP - Minimal Async HTTP Middleware Runtime
=============================================================================

A chain of ``(ctx, next)`` handlers composed into one coroutine with
"onion" control flow, and a per-request context that unifies the request
and the response.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    onionhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m onionhttp)
    ├── application.py       # Application, response finalizer
    ├── compose.py           # Composition engine
    ├── delegates.py         # Delegation layer
    ├── context.py           # Context (ctx)
    ├── request.py           # Request view (ctx.request)
    ├── response.py          # Response view (ctx.response)
    ├── errors.py            # HTTPError
    ├── config.py            # AppConfig dataclass
    ├── core/
    │   └── transport.py     # asyncio listener
    ├── http/
    │   ├── message.py       # IncomingMessage + RequestParser (ctx.req)
    │   ├── outgoing.py      # ServerResponse (ctx.res)
    │   └── status_codes.py  # HTTP status enum
    └── middleware/
        ├── base.py          # Middleware base classes
        ├── logging.py       # Access logging
        ├── errors.py        # Error-to-response handler
        └── timeout.py       # Deadline handler

=============================================================================
QUICK START
=============================================================================

    from onionhttp import Application

    app = Application()

    async def outer(ctx, next):
        print("1")
        await next()
        print("4")

    async def inner(ctx, next):
        print("2")
        ctx.body = {"hello": "world"}
        await next()
        print("3")

    app.use(outer).use(inner)
    app.run(port=3000)

=============================================================================
"""

__version__ = "1.0.0"

from .application import Application, respond, serialize_body
from .compose import NextCalledTwiceError, compose
from .config import AppConfig
from .context import Context
from .delegates import delegate
from .errors import HTTPError
from .request import Request
from .response import Response

__all__ = [
    "Application",
    "AppConfig",
    "Context",
    "Request",
    "Response",
    "HTTPError",
    "NextCalledTwiceError",
    "compose",
    "delegate",
    "respond",
    "serialize_body",
    "__version__",
]
