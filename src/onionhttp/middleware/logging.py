"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Access logging with timing and request correlation IDs.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default, Apache-like):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [10/Jun/2026:10:55:36 +0000] "GET /api" 200 13 5.12ms │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "path": "/api",         │
    │  "status_code": 200, "duration_ms": 5.12, ...}                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
POSITION IN THE CHAIN
=============================================================================

Register it FIRST. Being the outermost layer, its "after" half runs last,
so the measured time covers every other handler, and the request id is
on ``ctx.state["request_id"]`` before anything else runs.

A request whose chain fails is logged with the exception name and
re-raised; the log line is not a substitute for the top-level catch.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware
from ..compose import Next
from ..context import Context


logger = logging.getLogger("onionhttp.access")


@dataclass
class RequestLog:
    """One access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}{self.query}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def _body_length(body) -> int:
    if body is None:
        return 0
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray, memoryview)):
        return len(body)
    # Structured bodies are serialized later by the finalizer
    return -1


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Usage:
        app.use(LoggingMiddleware())                          # text
        app.use(LoggingMiddleware(log_format="json"))         # JSON
        app.use(LoggingMiddleware(skip_paths=["/health"]))    # quieter
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Echo the request id as X-Request-ID.
            log_level: Level for successful requests.
            skip_paths: Paths that are never logged (health checks).
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {log_format}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    async def __call__(self, ctx: Context, next: Next) -> None:
        # Reuse an upstream correlation id when the client sent one
        request_id = ctx.get("X-Request-ID") or uuid.uuid4().hex[:8]
        ctx.state["request_id"] = request_id
        if self.include_request_id:
            ctx.set("X-Request-ID", request_id)

        start_time = time.perf_counter()

        try:
            await next()
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] {ctx.method} {ctx.path} failed: "
                f"{type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if ctx.path in self.skip_paths:
            return

        entry = RequestLog(
            request_id=request_id,
            method=ctx.method,
            path=ctx.path,
            query=ctx.search,
            client_ip=ctx.ip or "-",
            user_agent=ctx.get("User-Agent") or "-",
            status_code=ctx.status,
            content_length=_body_length(ctx.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Timing: wall time of everything downstream of this handler
# 2. Correlation: X-Request-ID reused or generated, exposed on ctx.state
# 3. Formats: Apache-like text or JSON
# 4. Failures: logged with the exception name, then re-raised
# =============================================================================
