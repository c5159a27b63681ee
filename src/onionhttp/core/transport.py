"""
=============================================================================
ASYNCIO TRANSPORT
=============================================================================

Binds a listening socket and turns every accepted connection into one
``(IncomingMessage, ServerResponse)`` pair for the application's entry
point.

=============================================================================
CONCURRENCY MODEL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ONE EVENT LOOP, MANY TASKS                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   asyncio.start_server                                              │
    │        │ accept                                                     │
    │        ├──────► task: connection A ── read ── chain ── write ── ✕   │
    │        ├──────► task: connection B ── read ─── chain ─── write ─ ✕  │
    │        └──────► task: connection C ── read ── chain ── write ── ✕   │
    │                                                                     │
    │   Every await inside a handler yields to the loop, so a slow        │
    │   handler on A never blocks B or C. Within one connection the       │
    │   handlers of a chain still run strictly one after another.         │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Each connection carries exactly one exchange: the response is sent with
``Connection: close`` and the stream is closed afterwards.

=============================================================================
"""

from typing import Awaitable, Callable, Optional, Tuple
import asyncio
import json
import logging
import uuid

from ..config import AppConfig
from ..http.message import HTTPParseError, IncomingMessage, RequestParser
from ..http.outgoing import ServerResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


EntryPoint = Callable[[IncomingMessage, ServerResponse], Awaitable[None]]

_READ_CHUNK = 64 * 1024


class Transport:
    """
    asyncio server feeding exchanges to an entry point.

    Usage:
        transport = Transport(config, app.callback())
        await transport.start()
        ...
        await transport.close()
    """

    def __init__(self, config: AppConfig, entry_point: EntryPoint):
        self.config = config
        self._entry_point = entry_point
        self._parser = RequestParser(max_request_size=config.max_request_size)
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def server(self) -> Optional[asyncio.AbstractServer]:
        return self._server

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when configured with port 0."""
        if self._server is None or not self._server.sockets:
            return (self.config.host, self.config.port)
        sockname = self._server.sockets[0].getsockname()
        return (sockname[0], sockname[1])

    async def start(self) -> asyncio.AbstractServer:
        """Bind and start accepting connections."""
        if self._server is not None:
            raise RuntimeError("Transport already started")

        self._server = await asyncio.start_server(
            self._handle_connection,
            host=self.config.host,
            port=self.config.port,
            backlog=self.config.backlog,
        )
        host, port = self.address
        logger.info(f"Listening on http://{host}:{port}")
        return self._server

    async def close(self) -> None:
        """Stop accepting connections and wait for the listener to close."""
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logger.info("Transport closed")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        conn_id = uuid.uuid4().hex[:8]
        peer = writer.get_extra_info("peername") or ("", 0)
        client_address = (str(peer[0]), int(peer[1]))
        logger.debug(f"[{conn_id}] Connection from {client_address[0]}:{client_address[1]}")

        try:
            try:
                raw = await asyncio.wait_for(
                    self.read_request(reader),
                    timeout=self.config.read_timeout,
                )
                if raw is None:
                    logger.debug(f"[{conn_id}] Client closed before sending a request")
                    return
                message = self._parser.parse(raw, client_address)
            except asyncio.TimeoutError:
                await self._send_error(writer, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                return
            except HTTPParseError as e:
                logger.info(f"[{conn_id}] Rejected request: {e}")
                await self._send_error(writer, e.status_code, str(e))
                return

            response = ServerResponse(writer, server_name=self.config.server_name)
            await self._entry_point(message, response)
        except (ConnectionError, OSError) as e:
            logger.debug(f"[{conn_id}] Connection lost: {e}")
        except Exception:
            logger.exception(f"[{conn_id}] Error while handling connection")
        finally:
            # Exchanges abandoned by the application still get their socket closed
            if not writer.is_closing():
                writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"[{conn_id}] Error while closing stream: {e}")

    async def read_request(self, reader: asyncio.StreamReader) -> Optional[bytes]:
        """
        Read one complete request (head + Content-Length body).

        Returns:
            The raw request bytes, or None if the peer closed the connection
            before sending anything.

        Raises:
            HTTPParseError: Request too large (413) or truncated (400).
        """
        buffer = bytearray()
        limit = self.config.max_request_size

        while b"\r\n\r\n" not in buffer:
            chunk = await reader.read(_READ_CHUNK)
            if not chunk:
                if not buffer:
                    return None
                raise HTTPParseError("Incomplete request: connection closed mid-headers")
            buffer += chunk
            if len(buffer) > limit:
                raise HTTPParseError(f"Request too large: {len(buffer)} bytes", status_code=413)

        header_end = buffer.find(b"\r\n\r\n")
        headers = self._scan_headers(bytes(buffer[:header_end]))
        total = header_end + 4 + RequestParser.content_length(headers)

        if total > limit:
            raise HTTPParseError(f"Request too large: {total} bytes", status_code=413)

        missing = total - len(buffer)
        if missing > 0:
            try:
                buffer += await reader.readexactly(missing)
            except asyncio.IncompleteReadError as e:
                raise HTTPParseError(
                    f"Incomplete body: expected {missing} more bytes, got {len(e.partial)}"
                ) from None

        return bytes(buffer[:total])

    @staticmethod
    def _scan_headers(head: bytes) -> dict:
        # Only what is needed to size the body; full parsing happens later
        headers = {}
        for line in head.split(b"\r\n")[1:]:
            name, sep, value = line.partition(b":")
            if sep:
                headers[name.strip().lower().decode("latin-1")] = value.strip().decode("latin-1")
        return headers

    async def _send_error(self, writer: asyncio.StreamWriter, status: int, message: str) -> None:
        """Answer a request that never reached the application."""
        response = ServerResponse(writer, server_name=self.config.server_name)
        response.status_code = int(status)
        response.set_header("Content-Type", "application/json; charset=utf-8")
        await response.end(json.dumps({"error": message}))
