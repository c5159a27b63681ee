"""
=============================================================================
REQUEST VIEW
=============================================================================

``ctx.request``: a per-request object layered over the raw IncomingMessage
(``ctx.req``). Reads and writes go straight through to the raw message, so
rewriting ``request.path`` in one handler is seen by every later handler
(and by ``ctx.req.url``).

=============================================================================
URL DECOMPOSITION
=============================================================================

    url:          /search/users?q=alice&tag=a&tag=b
                  ─────┬─────── ──────────┬─────────
    path:         /search/users           │
    querystring:                  q=alice&tag=a&tag=b
    search:                      ?q=alice&tag=a&tag=b
    query:        {"q": "alice", "tag": ["a", "b"]}

Setting any of url / path / querystring / query rewrites ``req.url`` and
the others are recomputed from it.

=============================================================================
TEMPLATE VS INSTANCE
=============================================================================

Each Application owns a subclass of Request (``app.request``) that acts as
the template: attributes added to it are visible to every request of that
application. Per-request state lives only on the instance, so mutating one
request never touches the template or another request.

=============================================================================
"""

from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit
import json

from .errors import HTTPError


QueryValue = Union[str, List[str]]


class Request:
    """
    Per-request view over the raw IncomingMessage.

    Cross-links (set by Application.create_context):
        app, req, res  - owning application and raw transport objects
        ctx            - the Context of this exchange
        response       - the sibling Response view
    """

    def __init__(self, app, req, res):
        self.app = app
        self.req = req
        self.res = res
        self.ctx = None
        self.response = None
        self._query_cache: Dict[str, Dict[str, QueryValue]] = {}
        self._json_cache: Any = None

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def headers(self) -> Dict[str, str]:
        """Request headers, lowercase names."""
        return self.req.headers

    @property
    def header(self) -> Dict[str, str]:
        return self.req.headers

    def get(self, field: str) -> str:
        """
        Case-insensitive header lookup, "" when missing.

        "Referer" and "Referrer" are treated as the same field.
        """
        name = field.lower()
        if name in ("referer", "referrer"):
            return self.req.headers.get("referrer") or self.req.headers.get("referer", "")
        return self.req.headers.get(name, "")

    # =========================================================================
    # METHOD AND URL
    # =========================================================================

    @property
    def method(self) -> str:
        return self.req.method

    @method.setter
    def method(self, value: str) -> None:
        self.req.method = value.upper()

    @property
    def url(self) -> str:
        return self.req.url

    @url.setter
    def url(self, value: str) -> None:
        self.req.url = value

    @property
    def path(self) -> str:
        return urlsplit(self.req.url).path

    @path.setter
    def path(self, value: str) -> None:
        parts = urlsplit(self.req.url)
        if parts.path == value:
            return
        self.req.url = value + (f"?{parts.query}" if parts.query else "")

    @property
    def querystring(self) -> str:
        return urlsplit(self.req.url).query

    @querystring.setter
    def querystring(self, value: str) -> None:
        parts = urlsplit(self.req.url)
        if parts.query == value:
            return
        self.req.url = parts.path + (f"?{value}" if value else "")

    @property
    def search(self) -> str:
        """The query string with its leading "?", or ""."""
        qs = self.querystring
        return f"?{qs}" if qs else ""

    @property
    def query(self) -> Dict[str, QueryValue]:
        """
        Parsed query string.

        A key that appears once maps to a string, a repeated key maps to a
        list of strings. Parsed once per distinct query string.
        """
        qs = self.querystring
        cached = self._query_cache.get(qs)
        if cached is None:
            parsed = parse_qs(qs, keep_blank_values=True)
            cached = {k: v[0] if len(v) == 1 else v for k, v in parsed.items()}
            self._query_cache[qs] = cached
        return cached

    @query.setter
    def query(self, value: Dict[str, Any]) -> None:
        self.querystring = urlencode(value, doseq=True)

    # =========================================================================
    # PEER AND HOST
    # =========================================================================

    @property
    def host(self) -> str:
        """Host header (X-Forwarded-Host first when the app trusts a proxy)."""
        if self.app.config.proxy:
            forwarded = self.req.headers.get("x-forwarded-host", "")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return self.req.headers.get("host", "")

    @property
    def hostname(self) -> str:
        host = self.host
        if host.startswith("["):
            # IPv6 literal, e.g. [::1]:3000
            return host[1:host.find("]")]
        return host.split(":")[0]

    @property
    def ip(self) -> str:
        """Client address (first X-Forwarded-For entry when behind a trusted proxy)."""
        if self.app.config.proxy:
            forwarded = self.req.headers.get("x-forwarded-for", "")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return self.req.remote_address

    # =========================================================================
    # BODY
    # =========================================================================

    @property
    def type(self) -> str:
        """Content-Type without parameters, e.g. "application/json"."""
        return self.req.headers.get("content-type", "").split(";")[0].strip().lower()

    @property
    def length(self) -> Optional[int]:
        raw = self.req.headers.get("content-length")
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    @property
    def body(self) -> bytes:
        """Raw request body bytes."""
        return self.req.body

    @property
    def json(self) -> Any:
        """
        Request body decoded as JSON, None for an empty body.

        Raises:
            HTTPError: 400 if the body is not valid JSON.
        """
        if self._json_cache is None and self.req.body:
            try:
                self._json_cache = json.loads(self.req.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPError(400, f"Invalid JSON body: {e}") from e
        return self._json_cache

    # =========================================================================
    # INSPECTION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "header": dict(self.headers),
        }

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"
