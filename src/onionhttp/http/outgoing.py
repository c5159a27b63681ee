"""
=============================================================================
SERVER RESPONSE (RAW RESPONSE CARRIER)
=============================================================================

The raw response object handed to the application by the transport. It
owns the stream writer for one exchange and knows how to put a status line,
headers and a body on the wire exactly once.

Handlers normally go through ``ctx.response`` (see ``onionhttp.response``),
which stores status and headers here and leaves the body to the finalizer.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    status_code / headers        end(body)                  stream closed
    mutated by handlers  ─────►  serializes head  ─────►    finished=True
    (headers_sent=False)         + body, drains             headers_sent=True

=============================================================================
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union
import logging

from .status_codes import EMPTY_BODY_STATUSES, status_phrase


logger = logging.getLogger(__name__)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always GMT.

    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


HeaderValue = Union[str, int, List[str]]


def _check_header_text(text: str, what: str) -> None:
    if "\r" in text or "\n" in text:
        raise ValueError(f"Invalid header {what}: contains CR or LF")
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        raise ValueError(f"Invalid header {what}: {text!r} is not latin-1") from None


class ServerResponse:
    """
    Response carrier bound to one asyncio stream writer.

    Header names are matched case-insensitively but sent with the casing
    they were first set with.

    Attributes:
        status_code:    Numeric status sent in the status line.
        status_message: Reason phrase; derived from the code when empty.
        headers_sent:   True once the head has been written.
        finished:       True once end() completed.
    """

    def __init__(self, writer, server_name: str = "onionhttp", version: str = "HTTP/1.1"):
        self._writer = writer
        self.server_name = server_name
        self.version = version
        self.status_code = 200
        self.status_message = ""
        self.headers_sent = False
        self.finished = False
        # lowercase name → (original name, value)
        self._headers: Dict[str, Tuple[str, HeaderValue]] = {}

    # =========================================================================
    # HEADERS
    # =========================================================================

    def set_header(self, name: str, value: HeaderValue) -> None:
        """
        Set a header, replacing any previous value.

        Raises:
            RuntimeError: If the head was already written.
            ValueError: If the name or a value cannot go on the wire
                        (not latin-1, or contains CR/LF).
        """
        if self.headers_sent:
            raise RuntimeError("Cannot set headers after they are sent")
        _check_header_text(name, "name")
        for item in value if isinstance(value, list) else [value]:
            _check_header_text(str(item), f"value of {name!r}")
        self._headers[name.lower()] = (name, value)

    def get_header(self, name: str) -> Optional[HeaderValue]:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def remove_header(self, name: str) -> None:
        if self.headers_sent:
            raise RuntimeError("Cannot remove headers after they are sent")
        self._headers.pop(name.lower(), None)

    def get_headers(self) -> Dict[str, HeaderValue]:
        """Snapshot of the headers keyed by lowercase name."""
        return {key: value for key, (_, value) in self._headers.items()}

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    @property
    def status_line(self) -> str:
        message = self.status_message or status_phrase(self.status_code)
        return f"{self.version} {self.status_code} {message}"

    def to_bytes(self, body: bytes = b"", include_body: bool = True) -> bytes:
        """
        Serialize head and body.

        Content-Length, Date, Server and Connection are added when missing.
        With ``include_body=False`` (HEAD requests, 204/304) the
        Content-Length still describes the body that was not sent.
        """
        headers = dict(self._headers)

        if self.status_code in EMPTY_BODY_STATUSES:
            headers.pop("content-length", None)
        else:
            headers.setdefault("content-length", ("Content-Length", str(len(body))))
        headers.setdefault("date", ("Date", format_http_date(datetime.now(timezone.utc))))
        headers.setdefault("server", ("Server", self.server_name))
        # one exchange per connection
        headers["connection"] = ("Connection", "close")

        lines = [self.status_line]
        for name, value in headers.values():
            if isinstance(value, list):
                lines.extend(f"{name}: {item}" for item in value)
            else:
                lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return head + body if include_body else head

    # =========================================================================
    # WRITING
    # =========================================================================

    async def end(self, body: Union[bytes, str, None] = None, include_body: bool = True) -> None:
        """
        Write the complete response and close the stream.

        Raises:
            RuntimeError: If the response was already ended.
            ConnectionError: If the peer went away before the write finished.
        """
        if self.finished:
            raise RuntimeError("Response already ended")

        if body is None:
            body = b""
        elif isinstance(body, str):
            body = body.encode("utf-8")

        if self._writer.is_closing():
            raise ConnectionResetError("Transport closed before the response was written")

        payload = self.to_bytes(body, include_body=include_body)
        self.headers_sent = True
        self._writer.write(payload)
        await self._writer.drain()
        self.finished = True

        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error while closing stream: {e}")

        logger.debug(f"Sent {self.status_code} ({len(body)} bytes)")
