"""
Unit tests for the asyncio transport.
"""

import asyncio
import logging

import pytest

from conftest import FakeWriter, split_response
from onionhttp import AppConfig
from onionhttp.core import Transport
from onionhttp.http import HTTPParseError


def make_reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


class TestHandleConnection:
    """Tests for Transport._handle_connection."""

    @pytest.mark.asyncio
    async def test_entry_point_receives_parsed_message(self):
        """Test that one request is parsed and handed to the entry point."""
        seen = []

        async def entry(req, res):
            seen.append((req.method, req.url, req.client_address))
            res.status_code = 200
            await res.end(b"ok")

        transport = Transport(AppConfig(port=0), entry)
        writer = FakeWriter(("10.0.0.7", 4000))
        await transport._handle_connection(
            make_reader(b"GET /x?y=1 HTTP/1.1\r\nHost: t\r\n\r\n"), writer
        )

        assert seen == [("GET", "/x?y=1", ("10.0.0.7", 4000))]
        assert split_response(writer.buffer)[2] == b"ok"
        assert writer.closed is True

    @pytest.mark.asyncio
    async def test_entry_point_failure_is_logged_and_closed(self, caplog):
        """Test that an unexpected entry point error is logged and the stream closed."""
        async def entry(req, res):
            raise RuntimeError("context factory broke")

        transport = Transport(AppConfig(port=0), entry)
        writer = FakeWriter()

        with caplog.at_level(logging.ERROR, logger="onionhttp.core.transport"):
            await transport._handle_connection(
                make_reader(b"GET / HTTP/1.1\r\nHost: t\r\n\r\n"), writer
            )

        assert writer.closed is True
        assert writer.buffer == bytearray()
        record = caplog.records[-1]
        assert "Error while handling connection" in record.getMessage()
        assert record.exc_info[0] is RuntimeError

    @pytest.mark.asyncio
    async def test_parse_error_answered_by_transport(self):
        """Test that a malformed request never reaches the entry point."""
        called = []

        async def entry(req, res):
            called.append(req)

        transport = Transport(AppConfig(port=0), entry)
        writer = FakeWriter()
        await transport._handle_connection(make_reader(b"BROKEN\r\n\r\n"), writer)

        assert called == []
        assert split_response(writer.buffer)[0] == "HTTP/1.1 400 Bad Request"

    @pytest.mark.asyncio
    async def test_empty_connection_is_closed_quietly(self):
        """Test that a peer closing before sending anything is not an error."""
        async def entry(req, res):
            raise AssertionError("should not be called")

        transport = Transport(AppConfig(port=0), entry)
        writer = FakeWriter()
        await transport._handle_connection(make_reader(b""), writer)

        assert writer.buffer == bytearray()
        assert writer.closed is True


class TestReadRequest:
    """Tests for Transport.read_request."""

    @pytest.mark.asyncio
    async def test_reads_head_and_body(self):
        """Test that exactly Content-Length body bytes are read."""
        transport = Transport(AppConfig(port=0), None)
        raw = b"POST / HTTP/1.1\r\nContent-Length: 4\r\n\r\nbody"

        assert await transport.read_request(make_reader(raw + b"extra")) == raw

    @pytest.mark.asyncio
    async def test_truncated_body(self):
        """Test that a body shorter than Content-Length is a 400."""
        transport = Transport(AppConfig(port=0), None)

        with pytest.raises(HTTPParseError) as exc_info:
            await transport.read_request(
                make_reader(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")
            )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_oversized_head(self):
        """Test that a head larger than the limit is a 413."""
        transport = Transport(AppConfig(port=0, max_request_size=1024), None)
        raw = b"GET / HTTP/1.1\r\nX-Big: " + b"a" * 2000 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            await transport.read_request(make_reader(raw))

        assert exc_info.value.status_code == 413
