"""
HTTP errors raised from inside handlers.

``ctx.throw(404)`` raises an HTTPError. Without any error handling handler
registered it reaches the application's top-level catch like any other
exception; with ``middleware.errors.error_handler()`` in front it becomes a
response with the matching status.
"""

from typing import Dict, Optional

from .http.status_codes import status_phrase


class HTTPError(Exception):
    """
    An exception that knows which HTTP status it maps to.

    Attributes:
        status_code: HTTP status (4xx/5xx).
        message:     Human readable message; defaults to the reason phrase.
        expose:      Whether ``message`` is safe to show to the client.
                     Defaults to True for 4xx, False for 5xx.
        headers:     Extra response headers (e.g. Retry-After).
    """

    def __init__(
        self,
        status_code: int = 500,
        message: Optional[str] = None,
        expose: Optional[bool] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if not isinstance(status_code, int) or not 400 <= status_code <= 599:
            raise ValueError(f"HTTPError status must be 4xx or 5xx, got {status_code!r}")
        self.status_code = status_code
        self.message = message or status_phrase(status_code)
        self.expose = status_code < 500 if expose is None else expose
        self.headers = dict(headers or {})
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"HTTPError({self.status_code}, {self.message!r})"
