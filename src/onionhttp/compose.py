"""
=============================================================================
COMPOSITION ENGINE
=============================================================================

Turns an ordered list of handlers into ONE coroutine function that runs
them with "onion" control flow.

=============================================================================
THE ONION MODEL
=============================================================================

Every handler has the signature ``handler(ctx, next)``. Code before
``await next()`` runs on the way IN, code after it runs on the way OUT:

    app.use(a)          async def a(ctx, next):
    app.use(b)              print("a before")
    app.use(c)              await next()          # runs b, which runs c
                            print("a after")

    ┌─────────────────────────────────────────────────────────────────────┐
    │  a (before)                                                         │
    │  ┌───────────────────────────────────────────────────────────────┐  │
    │  │  b (before)                                                   │  │
    │  │  ┌─────────────────────────────────────────────────────────┐  │  │
    │  │  │  c (before)                                             │  │  │
    │  │  │      next() → past the end → resolves, nothing runs     │  │  │
    │  │  │  c (after)                                              │  │  │
    │  │  └─────────────────────────────────────────────────────────┘  │  │
    │  │  b (after)                                                    │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    │  a (after)                                                          │
    └─────────────────────────────────────────────────────────────────────┘

    Output: a before, b before, c before, c after, b after, a after

=============================================================================
DISPATCH AS A STATE MACHINE
=============================================================================

Each run of the composed chain gets its own _Dispatcher:

    handlers: tuple   - immutable snapshot taken at compose() time
    index:    int     - cursor, last dispatched position (starts at -1)

Each handler receives a Next object bound to (dispatcher, i + 1). Calling
it returns the coroutine that dispatches position i + 1. A Next is
ONE-SHOT: calling it a second time raises NextCalledTwiceError instead of
running the rest of the chain again. The cursor never moves backwards, so
a stale continuation cannot re-enter an earlier position either.

Not calling next() at all is allowed. The chain simply stops there
(short-circuit) and unwinds.

=============================================================================
FAILURES
=============================================================================

A handler that raises, synchronously or from its awaitable, fails the
whole run(). The exception travels up through every pending
``await next()``, so enclosing "after" code is skipped unless a handler
wraps its ``await next()`` in try/except.

=============================================================================
"""

from typing import Any, Awaitable, Callable, Sequence, Tuple
import inspect
import logging


logger = logging.getLogger(__name__)


Next = Callable[[], Awaitable[None]]
Handler = Callable[[Any, Next], Any]


class NextCalledTwiceError(RuntimeError):
    """A handler invoked its ``next`` continuation more than once."""

    def __init__(self, position: int, handler_name: str = ""):
        where = f" in {handler_name}" if handler_name else ""
        super().__init__(f"next() called multiple times{where} (handler #{position})")
        self.position = position


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "name", None) or getattr(handler, "__name__", type(handler).__name__)


class _Continuation:
    """
    The ``next`` passed to handler i. Calling it dispatches handler i + 1.

    One-shot: the second call raises NextCalledTwiceError synchronously,
    before anything else in the chain runs.
    """

    __slots__ = ("_dispatcher", "_index", "_called", "pending")

    def __init__(self, dispatcher: "_Dispatcher", index: int):
        self._dispatcher = dispatcher
        self._index = index
        self._called = False
        # Coroutine created by the call, awaited by the dispatcher when the
        # handler itself never did
        self.pending = None

    def __call__(self) -> Awaitable[None]:
        if self._called:
            caller = self._index - 1
            raise NextCalledTwiceError(caller, self._dispatcher.name_of(caller))
        self._called = True
        self.pending = self._dispatcher.dispatch(self._index)
        return self.pending

    def __repr__(self) -> str:
        return f"<next to handler #{self._index}{' (used)' if self._called else ''}>"


class _Dispatcher:
    """Cursor over one traversal of a composed chain."""

    __slots__ = ("handlers", "ctx", "index")

    def __init__(self, handlers: Tuple[Handler, ...], ctx: Any):
        self.handlers = handlers
        self.ctx = ctx
        self.index = -1

    def name_of(self, position: int) -> str:
        if 0 <= position < len(self.handlers):
            return _handler_name(self.handlers[position])
        return ""

    async def dispatch(self, i: int) -> None:
        if i <= self.index:
            raise NextCalledTwiceError(i - 1, self.name_of(i - 1))
        self.index = i

        if i >= len(self.handlers):
            # Terminal next: nothing left to run
            return

        handler = self.handlers[i]
        continuation = _Continuation(self, i + 1)
        result = handler(self.ctx, continuation)
        if inspect.isawaitable(result):
            await result
        elif (
            continuation.pending is not None
            and inspect.getcoroutinestate(continuation.pending) == inspect.CORO_CREATED
        ):
            # Sync handler called next() without returning it
            await continuation.pending


def compose(handlers: Sequence[Handler]) -> Callable[[Any], Awaitable[None]]:
    """
    Compose handlers into a single coroutine function ``run(ctx)``.

    Args:
        handlers: Ordered handlers, each ``handler(ctx, next)``. Plain
                  functions and coroutine functions are both accepted; a
                  plain function continues the chain by calling
                  ``next()`` (returning it or not).

    Returns:
        ``async def run(ctx)`` executing the chain in onion order.

    Raises:
        TypeError: If ``handlers`` is not a sequence of callables.

    Example:
        run = compose([timing, auth, render])
        await run(ctx)
    """
    if isinstance(handlers, (str, bytes)) or not isinstance(handlers, Sequence):
        raise TypeError("Middleware stack must be a sequence of callables")

    for handler in handlers:
        if not callable(handler):
            raise TypeError(f"Middleware must be callable, got {type(handler).__name__}")

    # Snapshot: later mutation of the caller's list does not leak in
    chain = tuple(handlers)
    logger.debug(f"Composed chain of {len(chain)} handler(s)")

    async def run(ctx: Any) -> None:
        await _Dispatcher(chain, ctx).dispatch(0)

    run.handlers = chain
    return run
