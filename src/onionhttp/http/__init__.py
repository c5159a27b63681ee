"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The raw request/response pair the transport hands to the application:

    IncomingMessage   - parsed request line, headers and body  (ctx.req)
    ServerResponse    - status, headers and the stream writer  (ctx.res)
    RequestParser     - bytes → IncomingMessage
    HTTPStatus        - status codes and reason phrases

=============================================================================
"""

from .message import HTTPParseError, IncomingMessage, RequestParser, parse_request
from .outgoing import ServerResponse, format_http_date
from .status_codes import (
    EMPTY_BODY_STATUSES,
    REDIRECT_STATUSES,
    HTTPStatus,
    is_valid_status,
    status_phrase,
)

__all__ = [
    "HTTPParseError",
    "IncomingMessage",
    "RequestParser",
    "parse_request",
    "ServerResponse",
    "format_http_date",
    "HTTPStatus",
    "EMPTY_BODY_STATUSES",
    "REDIRECT_STATUSES",
    "is_valid_status",
    "status_phrase",
]
