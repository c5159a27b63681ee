"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Any callable ``handler(ctx, next)`` can be registered with ``app.use()``.
This module adds a class-based form for handlers that carry configuration,
and a named wrapper for plain functions.

=============================================================================
MIDDLEWARE ANATOMY
=============================================================================

    class MyMiddleware(Middleware):
        async def __call__(self, ctx, next):
            # ── BEFORE ─────────────────────────────────────────────────
            # validate, authenticate, start timers...
            # SHORT-CIRCUIT: return without awaiting next()

            if not ctx.get("Authorization"):
                ctx.throw(401)

            # ── CONTINUE ───────────────────────────────────────────────
            await next()            # exactly once

            # ── AFTER ──────────────────────────────────────────────────
            # decorate the response, log, record metrics...
            ctx.set("X-Processed-By", self.name)

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
import inspect

from ..compose import Next
from ..context import Context


class Middleware(ABC):
    """
    Abstract base class for class-based middleware.

    Subclasses implement ``async __call__(ctx, next)``. Instances are
    registered like any other handler: ``app.use(MyMiddleware())``.
    """

    @abstractmethod
    async def __call__(self, ctx: Context, next: Next) -> None:
        """
        Process one exchange.

        Args:
            ctx: The request context.
            next: Continuation running the rest of the chain. Await it at
                  most once; skip it to short-circuit.
        """

    @property
    def name(self) -> str:
        """Name used in logs and error messages."""
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.name}>"


class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(ctx, next)`` function with an explicit name.

        app.use(FunctionMiddleware(lambda ctx, next: next(), name="passthrough"))
    """

    def __init__(self, func: Callable[[Context, Next], Any], name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", "anonymous")

    async def __call__(self, ctx: Context, next: Next) -> None:
        result = self._func(ctx, next)
        if inspect.isawaitable(result):
            await result

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[Context, Next], Any]) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        async def powered_by(ctx, next):
            await next()
            ctx.set("X-Powered-By", "onionhttp")

        app.use(powered_by)
    """
    return FunctionMiddleware(func)
