"""
=============================================================================
BUILT-IN MIDDLEWARE
=============================================================================

Handlers for cross-cutting concerns, registered with ``app.use()`` like any
other handler:

    LoggingMiddleware   access log with timing and X-Request-ID
    error_handler()     turns failures into 4xx/5xx responses
    timeout(seconds)    fails the exchange when downstream is too slow

Recommended order (outermost first):

    app.use(error_handler())
    app.use(LoggingMiddleware())
    app.use(timeout(5))
    app.use(your_handlers...)

=============================================================================
"""

from .base import FunctionMiddleware, Middleware, function_middleware
from .errors import error_handler
from .logging import LoggingMiddleware, RequestLog
from .timeout import timeout

__all__ = [
    "Middleware",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
    "error_handler",
    "timeout",
]
