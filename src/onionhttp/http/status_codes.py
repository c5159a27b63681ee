"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes used by the response view and the transport, with their
reason phrases and the small sets of codes that change how a response is
finalized.

=============================================================================
STATUS CODES THAT CHANGE FINALIZATION
=============================================================================

    ┌────────┬──────────────────────────────────────────────────────────┐
    │  Code  │ Effect on the response finalizer                         │
    ├────────┼──────────────────────────────────────────────────────────┤
    │  204   │ No Content: body is dropped, only headers are sent       │
    │  205   │ Reset Content: body is dropped                           │
    │  304   │ Not Modified: body is dropped (client uses its cache)    │
    │  3xx   │ Redirect: usually paired with a Location header          │
    └────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Being an IntEnum, a member compares equal to its integer code:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus(404).phrase
        'Not Found'
    """

    # 1xx INFORMATIONAL
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206

    # 3xx REDIRECTION
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    IM_A_TEAPOT = 418
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("Not Found", "OK", ...)."""
        return _PHRASES.get(self.value, self.name.replace("_", " ").title())


_PHRASES = {
    200: "OK",
    206: "Partial Content",
    304: "Not Modified",
    414: "URI Too Long",
    418: "I'm a teapot",
    505: "HTTP Version Not Supported",
}


# Responses with these codes never carry a body (RFC 7230 section 3.3.3).
EMPTY_BODY_STATUSES = frozenset({204, 205, 304})

REDIRECT_STATUSES = frozenset({300, 301, 302, 303, 305, 307, 308})


def status_phrase(code: int) -> str:
    """
    Get the reason phrase for any integer status code.

    Unknown codes (custom 4xx/5xx values are legal) fall back to a generic
    phrase derived from the status class instead of raising.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return {
            1: "Informational",
            2: "Success",
            3: "Redirection",
            4: "Client Error",
            5: "Server Error",
        }.get(code // 100, "Unknown")


def is_valid_status(code: int) -> bool:
    """Whether ``code`` is a three digit HTTP status (100-999)."""
    return isinstance(code, int) and not isinstance(code, bool) and 100 <= code <= 999
