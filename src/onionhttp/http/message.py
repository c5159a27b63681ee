"""
=============================================================================
INCOMING HTTP MESSAGE
=============================================================================

The raw request object handed to the application by the transport, and the
parser that builds it from bytes read off the socket.

The application never exposes this object directly to handlers as the
"request". Handlers see ``ctx.request`` (a per-request view, see
``onionhttp.request``) which reads and writes through to this message, and
``ctx.req`` when they need the raw thing.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─ REQUEST LINE ──────────────────────────────────────────────────────┐
    │    GET /api/users?page=1&limit=10 HTTP/1.1\r\n                      │
    │    ─┬─ ────────────┬──────────────  ────┬────                       │
    │   Method          URL                 Version                       │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ HEADERS ───────────────────────────────────────────────────────────┐
    │    Host: example.com\r\n                                            │
    │    Content-Type: application/json\r\n                               │
    │    Content-Length: 42\r\n                                           │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ EMPTY LINE ────────────────────────────────────────────────────────┐
    │    \r\n                                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ BODY (optional, Content-Length bytes) ─────────────────────────────┐
    │    {"username": "alice"}                                            │
    └─────────────────────────────────────────────────────────────────────┘

Unlike a routing server, the URL is kept whole (path + query string).
Splitting it is the request view's job, because handlers may rewrite
``ctx.url``, ``ctx.path`` or ``ctx.query`` and the other two must follow.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple
import re


class HTTPParseError(Exception):
    """
    Raised when a raw request cannot be parsed.

    Carries the HTTP status the transport should answer with:

        400 Bad Request                 - malformed syntax
        405 Method Not Allowed          - unknown method
        413 Payload Too Large           - request exceeds the size limit
        505 HTTP Version Not Supported  - unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class IncomingMessage:
    """
    A parsed HTTP request as read from the wire.

    Attributes:
        method:         Request method, uppercase ("GET", "POST", ...).
        url:            Request target exactly as sent ("/users?page=2").
        version:        "HTTP/1.1" or "HTTP/1.0".
        headers:        Header map with LOWERCASE names.
        body:           Raw body bytes (Content-Length bytes).
        client_address: (ip, port) of the peer.
    """

    method: str
    url: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)

    @property
    def remote_address(self) -> str:
        """Peer IP address."""
        return self.client_address[0]


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into IncomingMessage objects.

        Raw bytes
            │
            ▼
        1. Size check ─────────────── too large? → HTTPParseError(413)
        2. Split at \\r\\n\\r\\n ────────── missing? → HTTPParseError(400)
        3. Request line ───────────── METHOD SP URL SP VERSION
        4. Headers ────────────────── "Name: Value", names lowercased
        5. Body ───────────────────── exactly Content-Length bytes
            │
            ▼
        IncomingMessage
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    SUPPORTED_VERSIONS = {"HTTP/1.0", "HTTP/1.1"}

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> IncomingMessage:
        """
        Parse raw request bytes.

        Args:
            data: Raw request bytes (head and body).
            client_address: Peer (ip, port).

        Returns:
            The parsed IncomingMessage.

        Raises:
            HTTPParseError: If the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        head = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = head.split("\r\n")
        method, url, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self.content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return IncomingMessage(
            method=method,
            url=url,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, url, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Unknown method: {method}", status_code=405)

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        # Absolute-form targets are only meant for proxies
        if not (url.startswith("/") or url == "*"):
            raise HTTPParseError(f"Invalid request target: {url!r}")

        return method, url, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line!r}")

            name = match.group(1).strip().lower()
            value = match.group(2).strip()

            if name in headers:
                # RFC 7230 3.2.2: repeated fields fold into a comma list
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value

        return headers

    @staticmethod
    def content_length(headers: Dict[str, str]) -> int:
        """
        Read Content-Length from a lowercased header map.

        Raises:
            HTTPParseError: If the header is not a non-negative integer.
        """
        raw = headers.get("content-length")
        if raw is None:
            return 0
        try:
            length = int(raw)
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {raw!r}") from None
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {raw!r}")
        return length


def parse_request(data: bytes, client_address: Tuple[str, int] = ("", 0)) -> IncomingMessage:
    """Parse with a default-configured RequestParser."""
    return RequestParser().parse(data, client_address)
