"""
=============================================================================
CONTEXT
=============================================================================

The object every handler receives as ``ctx``. It owns no request or
response data itself; it holds typed references to the four objects of one
exchange and delegates the common fields to them:

    ┌───────────────────────────────────────────────────────────────────┐
    │                              ctx                                  │
    │   app ───────► Application (shared, read-only while serving)      │
    │   req ───────► IncomingMessage (raw)                              │
    │   res ───────► ServerResponse  (raw)                              │
    │   request ───► Request view  ◄──┐  request.response / .ctx        │
    │   response ──► Response view ◄──┘  response.request / .ctx        │
    │   state ─────► dict for passing data between handlers             │
    └───────────────────────────────────────────────────────────────────┘

    Delegated to ctx.response:  set(), remove(), redirect(),
                                status, message, body, type (r/w),
                                headers_sent (read)
    Delegated to ctx.request:   get(),
                                query, querystring, url, path, method (r/w),
                                headers, host, hostname, ip, search (read)

=============================================================================
"""

from typing import Any, Dict, Optional

from .delegates import delegate
from .errors import HTTPError


class Context:
    """
    Per-request aggregate handed to every handler.

    Instances are created by Application.create_context() from the
    application's Context subclass (``app.context``); never share one
    between requests.

    Attributes:
        app:      The Application serving this exchange.
        req:      Raw IncomingMessage.
        res:      Raw ServerResponse.
        request:  Request view.
        response: Response view.
        state:    Free-form dict for data shared between handlers.
        respond:  Set to False to skip the built-in response finalizer
                  (for handlers that write to ``ctx.res`` themselves).
        original_url: Request URL before any handler rewrote it.
    """

    def __init__(self, app, req, res, request, response):
        self.app = app
        self.req = req
        self.res = res
        self.request = request
        self.response = response
        self.state: Dict[str, Any] = {}
        self.respond = True
        self.original_url = req.url

    def throw(
        self,
        status_code: int = 500,
        message: Optional[str] = None,
        expose: Optional[bool] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Raise an HTTPError.

            ctx.throw(403)
            ctx.throw(400, "name required")
        """
        raise HTTPError(status_code, message, expose=expose, headers=headers)

    def assert_(self, value: Any, status_code: int = 500, message: Optional[str] = None) -> None:
        """Raise an HTTPError unless ``value`` is truthy."""
        if not value:
            self.throw(status_code, message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request": self.request.to_dict(),
            "response": self.response.to_dict(),
            "app": self.app.to_dict(),
            "original_url": self.original_url,
        }

    def __repr__(self) -> str:
        return f"<Context {self.request.method} {self.request.url} → {self.response.status}>"


(delegate(Context, "response")
    .method("set")
    .method("remove")
    .method("redirect")
    .access("status")
    .access("message")
    .access("body")
    .access("type")
    .getter("headers_sent"))

(delegate(Context, "request")
    .method("get")
    .access("query")
    .access("querystring")
    .access("url")
    .access("path")
    .access("method")
    .getter("headers")
    .getter("host")
    .getter("hostname")
    .getter("ip")
    .getter("search"))
