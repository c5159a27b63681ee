"""
=============================================================================
RESPONSE VIEW
=============================================================================

``ctx.response``: a per-request object layered over the raw ServerResponse
(``ctx.res``). Status and headers are stored on the raw response right
away; the body is kept here until the finalizer serializes it.

=============================================================================
STATUS / BODY INTERPLAY
=============================================================================

    ┌──────────────────────────────┬────────────────────────────────────┐
    │ Action                       │ Effect                             │
    ├──────────────────────────────┼────────────────────────────────────┤
    │ (nothing)                    │ status 404, body None              │
    │ body = "<h1>hi</h1>"         │ status 200*, type text/html        │
    │ body = "hi"                  │ status 200*, type text/plain       │
    │ body = {"a": 1}              │ status 200*, type application/json │
    │ body = b"..."                │ status 200*, type octet-stream     │
    │ body = None                  │ status 204*, type/length removed   │
    │ status = 204 / 205 / 304     │ body dropped                       │
    └──────────────────────────────┴────────────────────────────────────┘
    * only when no status was set explicitly by a handler

A Content-Type set explicitly before assigning the body is kept.

=============================================================================
"""

from typing import Any, Dict, List, Optional, Union
import mimetypes

from .http.status_codes import (
    EMPTY_BODY_STATUSES,
    REDIRECT_STATUSES,
    is_valid_status,
    status_phrase,
)


# Short names accepted by ``response.type = "json"``
_TYPE_ALIASES = {
    "json": "application/json",
    "html": "text/html",
    "text": "text/plain",
    "txt": "text/plain",
    "xml": "application/xml",
    "bin": "application/octet-stream",
    "form": "application/x-www-form-urlencoded",
}


def _content_type_for(value: str) -> Optional[str]:
    """Resolve "json", ".png", "page.html" or a full MIME type to a Content-Type."""
    if "/" in value:
        mime = value
    else:
        mime = _TYPE_ALIASES.get(value.lstrip(".").lower())
        if mime is None:
            name = value if "." in value else f"x.{value}"
            mime, _ = mimetypes.guess_type(name)
        if mime is None:
            return None

    if "charset" not in mime and (mime.startswith("text/") or mime == "application/json"):
        mime = f"{mime}; charset=utf-8"
    return mime


class Response:
    """
    Per-request view over the raw ServerResponse.

    Cross-links (set by Application.create_context):
        app, req, res  - owning application and raw transport objects
        ctx            - the Context of this exchange
        request        - the sibling Request view
    """

    def __init__(self, app, req, res):
        self.app = app
        self.req = req
        self.res = res
        self.ctx = None
        self.request = None
        self._body: Any = None
        self._explicit_status = False
        # Nothing matched yet
        res.status_code = 404

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status(self) -> int:
        return self.res.status_code

    @status.setter
    def status(self, code: int) -> None:
        if self.res.headers_sent:
            raise RuntimeError("Cannot set status after headers are sent")
        if not is_valid_status(code):
            raise ValueError(f"Invalid status code: {code!r}")

        self._explicit_status = True
        self.res.status_code = int(code)
        self.res.status_message = ""
        if code in EMPTY_BODY_STATUSES and self._body is not None:
            self._body = None

    @property
    def message(self) -> str:
        return self.res.status_message or status_phrase(self.res.status_code)

    @message.setter
    def message(self, value: str) -> None:
        self.res.status_message = value

    @property
    def explicit_status(self) -> bool:
        """True once a handler assigned ``status`` itself."""
        return self._explicit_status

    # =========================================================================
    # BODY
    # =========================================================================

    @property
    def body(self) -> Any:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        self._body = value

        if value is None:
            if not self._explicit_status:
                self._set_status_implicitly(204)
            self.remove("Content-Type")
            self.remove("Content-Length")
            return

        if not self._explicit_status:
            self._set_status_implicitly(200)

        has_type = self.has("Content-Type")

        if isinstance(value, str):
            if not has_type:
                self.type = "html" if value.lstrip().startswith("<") else "text"
            return

        if isinstance(value, (bytes, bytearray, memoryview)):
            if not has_type:
                self.type = "bin"
            return

        # Structured value, serialized by the finalizer
        self.remove("Content-Length")
        if not has_type:
            self.type = "json"

    def _set_status_implicitly(self, code: int) -> None:
        self.res.status_code = code
        self.res.status_message = ""

    @property
    def length(self) -> Optional[int]:
        raw = self.get("Content-Length")
        try:
            return int(raw) if raw else None
        except ValueError:
            return None

    @length.setter
    def length(self, value: int) -> None:
        self.set("Content-Length", str(value))

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def headers(self) -> Dict[str, Any]:
        """Snapshot of the response headers, lowercase names."""
        return self.res.get_headers()

    @property
    def header(self) -> Dict[str, Any]:
        return self.res.get_headers()

    @property
    def headers_sent(self) -> bool:
        return self.res.headers_sent

    def set(self, field: Union[str, Dict[str, Any]], value: Any = None) -> None:
        """
        Set one header, or several from a dict.

            response.set("Cache-Control", "no-cache")
            response.set({"X-A": "1", "X-B": "2"})
            response.set("Set-Cookie", ["a=1", "b=2"])

        Raises:
            ValueError: If a value is not latin-1 or contains CR/LF.
        """
        if self.res.headers_sent:
            return
        if isinstance(field, dict):
            for name, item in field.items():
                self.set(name, item)
            return
        if isinstance(value, (list, tuple)):
            self.res.set_header(field, [str(item) for item in value])
        else:
            self.res.set_header(field, str(value))

    def append(self, field: str, value: Union[str, List[str]]) -> None:
        """Add values to a header, keeping the ones already set."""
        previous = self.res.get_header(field)
        if previous is not None:
            existing = previous if isinstance(previous, list) else [str(previous)]
            value = existing + (list(value) if isinstance(value, (list, tuple)) else [value])
        self.set(field, value)

    def get(self, field: str) -> Any:
        """Header value, "" when missing."""
        value = self.res.get_header(field)
        return "" if value is None else value

    def has(self, field: str) -> bool:
        return self.res.has_header(field)

    def remove(self, field: str) -> None:
        if self.res.headers_sent:
            return
        self.res.remove_header(field)

    @property
    def type(self) -> str:
        """Content-Type without parameters, "" when unset."""
        value = self.get("Content-Type")
        return value.split(";")[0].strip() if value else ""

    @type.setter
    def type(self, value: Optional[str]) -> None:
        mime = _content_type_for(value) if value else None
        if mime:
            self.set("Content-Type", mime)
        else:
            self.remove("Content-Type")

    # =========================================================================
    # REDIRECTS
    # =========================================================================

    def redirect(self, url: str) -> None:
        """
        Redirect to ``url``: sets Location, a 302 unless a redirect status
        was already chosen, and a short text body.
        """
        self.set("Location", url)
        if self.res.status_code not in REDIRECT_STATUSES:
            self.status = 302
        self.type = "text"
        self.body = f"Redirecting to {url}."

    # =========================================================================
    # INSPECTION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "header": self.headers,
        }

    def __repr__(self) -> str:
        return f"<Response {self.status} {self.type or '-'}>"
