"""
Default error-to-response handler.

Without it, a failing chain only reaches ``Application.on_error`` and the
client gets no structured answer. Registered first, it turns failures into
responses:

    app.use(error_handler())
    app.use(LoggingMiddleware())
    ...

    HTTPError(404, "no such user")   → 404 {"error": "no such user"}
    HTTPError(503) with expose=False → 503 {"error": "Service Unavailable"}
    any other exception              → 500 {"error": "Internal Server Error"}

Non-HTTP exceptions are logged with their traceback here since they never
reach the top-level catch.
"""

import logging
from typing import Callable, Optional

from ..compose import Next
from ..context import Context
from ..errors import HTTPError
from ..http.status_codes import status_phrase


logger = logging.getLogger(__name__)


def error_handler(expose_details: bool = False, json_errors: bool = True) -> Callable:
    """
    Build an error handling middleware.

    Args:
        expose_details: Send the message of unexpected exceptions to the
                        client (development only).
        json_errors: Respond with ``{"error": message}``; plain text otherwise.
    """

    async def handle_errors(ctx: Context, next: Next) -> None:
        try:
            await next()
        except HTTPError as e:
            if ctx.headers_sent:
                raise
            message = e.message if e.expose else status_phrase(e.status_code)
            _reset_response(ctx)
            ctx.set(e.headers)
            _write_error(ctx, e.status_code, message, json_errors)
        except Exception as e:
            if ctx.headers_sent:
                raise
            logger.exception(f"Unhandled error in {ctx.method} {ctx.url}")
            message = f"{type(e).__name__}: {e}" if expose_details else status_phrase(500)
            _reset_response(ctx)
            _write_error(ctx, 500, message, json_errors)

    handle_errors.name = "error_handler"
    return handle_errors


def _reset_response(ctx: Context) -> None:
    # Headers set by handlers that never finished do not belong on an error
    for name in list(ctx.response.headers):
        if name != "x-request-id":
            ctx.remove(name)


def _write_error(ctx: Context, status_code: int, message: Optional[str], json_errors: bool) -> None:
    ctx.status = status_code
    if json_errors:
        ctx.body = {"error": message}
    else:
        ctx.type = "text"
        ctx.body = message
