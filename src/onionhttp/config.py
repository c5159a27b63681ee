"""
=============================================================================
APPLICATION CONFIGURATION
=============================================================================

Centralized, typed settings for the application and its transport.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Defaults          AppConfig()                                  │
    │   2. Environment       AppConfig.from_env()   (ONION_* variables)   │
    │   3. Code / CLI        AppConfig(port=8000) / --port 8000           │
    └─────────────────────────────────────────────────────────────────────┘

Configuration is validated eagerly when the Application is created, so a
bad port fails at startup instead of on the first request.

=============================================================================
"""

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from . import __version__


_TRUTHY = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class AppConfig:
    """
    Configuration for an Application.

    NETWORK
    - host, port, backlog

    REQUEST LIMITS
    - max_request_size, read_timeout

    BEHAVIOUR
    - proxy (trust X-Forwarded-* headers), json_indent

    LOGGING
    - log_level, log_format
    """

    host: str = "127.0.0.1"
    """Interface to bind. "0.0.0.0" for every interface (containers)."""

    port: int = 3000
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Pending connections the OS queues before refusing new ones."""

    max_request_size: int = 1024 * 1024
    """Largest accepted request (head + body) in bytes; bigger gets 413."""

    read_timeout: Optional[float] = 30.0
    """Seconds to wait for a complete request. None waits forever."""

    proxy: bool = False
    """Trust X-Forwarded-For / X-Forwarded-Host for ``ctx.ip`` and ``ctx.host``."""

    json_indent: Optional[int] = None
    """Indentation used when the finalizer serializes structured bodies."""

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (Apache-like) or "json"."""

    server_name: str = f"onionhttp/{__version__}"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build a configuration from environment variables.

            ONION_HOST          host (default 127.0.0.1)
            ONION_PORT          port (default 3000)
            ONION_BACKLOG       backlog (default 128)
            ONION_READ_TIMEOUT  read timeout seconds, "none" disables
            ONION_PROXY         trust proxy headers (1/true/yes/on)
            ONION_LOG_LEVEL     logging level (default INFO)
            ONION_LOG_FORMAT    text or json (default text)
        """
        raw_timeout = os.getenv("ONION_READ_TIMEOUT", "30")
        return cls(
            host=os.getenv("ONION_HOST", "127.0.0.1"),
            port=int(os.getenv("ONION_PORT", "3000")),
            backlog=int(os.getenv("ONION_BACKLOG", "128")),
            read_timeout=None if raw_timeout.lower() == "none" else float(raw_timeout),
            proxy=os.getenv("ONION_PROXY", "").lower() in _TRUTHY,
            log_level=os.getenv("ONION_LOG_LEVEL", "INFO"),
            log_format=os.getenv("ONION_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0 or None")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}. Use 'text' or 'json'.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
