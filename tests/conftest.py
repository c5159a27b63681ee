"""
pytest configuration and fixtures.
"""

from typing import Callable, Dict, Optional, Tuple
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from onionhttp import AppConfig, Application
from onionhttp.http import IncomingMessage, ServerResponse


class FakeWriter:
    """In-memory stand-in for asyncio.StreamWriter."""

    def __init__(self, peer: Tuple[str, int] = ("127.0.0.1", 54321)):
        self.buffer = bytearray()
        self.closed = False
        self.peer = peer

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("writer closed")
        self.buffer += data

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self) -> None:
        pass

    def get_extra_info(self, name: str, default=None):
        return self.peer if name == "peername" else default


def split_response(data: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split raw response bytes into (status line, lowercase headers, body)."""
    head, _, body = bytes(data).partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def config() -> AppConfig:
    """Default test application configuration."""
    return AppConfig(host="127.0.0.1", port=0, log_level="WARNING")


@pytest.fixture
def app(config: AppConfig) -> Application:
    return Application(config)


@pytest.fixture
def make_exchange() -> Callable[..., Tuple[IncomingMessage, ServerResponse, FakeWriter]]:
    """Factory for a raw (req, res, writer) triple."""

    def factory(
        method: str = "GET",
        url: str = "/",
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        client_address: Tuple[str, int] = ("127.0.0.1", 54321),
    ):
        req = IncomingMessage(
            method=method,
            url=url,
            headers={k.lower(): v for k, v in (headers or {"host": "localhost:3000"}).items()},
            body=body,
            client_address=client_address,
        )
        writer = FakeWriter(client_address)
        res = ServerResponse(writer, server_name="onionhttp-test")
        return req, res, writer

    return factory


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body
