"""
=============================================================================
HTTP RESPONSES
=============================================================================

HTTPResponse holds status, headers and body; to_bytes() produces what goes
on the wire:

    HTTP/1.1 201 Created\\r\\n
    Content-Type: application/json\\r\\n              set by the handler
    Content-Length: 87\\r\\n                          ┐ filled in by
    Date: Sun, 18 Oct 2026 12:00:00 GMT\\r\\n          │ to_bytes() when
    Server: guestbook/1.0\\r\\n                       ┘ missing
    \\r\\n
    {"id": 2, "author": "alice", ...}

Three response shapes cover the guestbook:

    HTML page     ResponseBuilder().html(rendered).build()
    JSON          created(message.to_dict())
    Plain error   plain_error(HTTPStatus.BAD_REQUEST, "Bad JSON")
                  → "Bad JSON\\n", text/plain, X-Content-Type-Options: nosniff

Form posts are answered with 303 See Other so the browser follows up with
a GET: ``see_other("/")``.

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, Iterable, Optional, Union

from .mime_types import get_content_type
from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
APPLICATION_JSON = "application/json"

DEFAULT_SERVER_NAME = "guestbook/1.0"


def format_http_date(dt: datetime) -> str:
    """RFC 7231 IMF-fixdate, always GMT: "Sun, 18 Oct 2026 12:00:00 GMT"."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


@dataclass
class HTTPResponse:
    """
    A response waiting to be serialized.

    Handlers rarely build one by hand; ResponseBuilder and the helpers at
    the bottom of this module cover the usual cases.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        status = HTTPStatus(self.status)
        return f"{self.version} {status.value} {status.phrase}"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive lookup."""
        wanted = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == wanted), default)

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for ``socket.sendall()``.

        Handler headers come first, in the order they were set; the
        framing headers follow unless the handler supplied its own.
        """
        defaults = (
            ("Content-Length", lambda: str(len(self.body))),
            ("Date", lambda: format_http_date(datetime.now(timezone.utc))),
            ("Server", lambda: server_name),
        )
        header_lines = [f"{name}: {value}" for name, value in self.headers.items()]
        for name, make_value in defaults:
            if self.get_header(name) is None:
                header_lines.append(f"{name}: {make_value()}")

        head = "\r\n".join([self.status_line, *header_lines]) + "\r\n\r\n"
        return head.encode("utf-8") + self.body


class ResponseBuilder:
    """
    Fluent construction of an HTTPResponse; every step returns the builder.

        (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json(message.to_dict())
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def _payload(self, data: Union[str, bytes], content_type: str) -> "ResponseBuilder":
        self._body = data.encode("utf-8") if isinstance(data, str) else data
        return self.header("Content-Type", content_type)

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        return self._payload(text, content_type)

    def html(self, html: str) -> "ResponseBuilder":
        return self._payload(html, TEXT_HTML)

    def json(self, data: Any) -> "ResponseBuilder":
        """Non-ASCII text is written as UTF-8, not as \\u escapes."""
        document = json.dumps(data, ensure_ascii=False)
        return self._payload(document, APPLICATION_JSON)

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Content-Type follows the file extension."""
        return self._payload(content, get_content_type(filename))

    def redirect(self, location: str, status: HTTPStatus = HTTPStatus.FOUND) -> "ResponseBuilder":
        return self.status(status).header("Location", location)

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        return self.header("Cache-Control", f"public, max-age={max_age}")

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=dict(self._headers), body=self._body)


# =============================================================================
# SHORTCUTS
# =============================================================================
#
#     return created(message.to_dict())
#     return see_other("/")
#     return plain_error(HTTPStatus.BAD_REQUEST, "content required")
#
# =============================================================================

def ok(body: Union[str, dict, list] = "") -> HTTPResponse:
    """200; lists and dicts as JSON, strings as plain text."""
    builder = ResponseBuilder()
    if isinstance(body, (dict, list)):
        builder.json(body)
    else:
        builder.text(body)
    return builder.build()


def created(body: Union[dict, list]) -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.CREATED).json(body).build()


def see_other(location: str) -> HTTPResponse:
    return (ResponseBuilder()
        .redirect(location, status=HTTPStatus.SEE_OTHER)
        .text(f'<a href="{location}">See Other</a>.\n', TEXT_HTML)
        .build())


def plain_error(status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Short plain-text error, newline-terminated.

        plain_error(HTTPStatus.NOT_FOUND, "404 page not found")
        → HTTP/1.1 404 Not Found
          X-Content-Type-Options: nosniff
          Content-Type: text/plain; charset=utf-8

          404 page not found
    """
    return (ResponseBuilder()
        .status(status)
        .header("X-Content-Type-Options", "nosniff")
        .text(f"{message}\n")
        .build())


def forbidden(message: str = "403 Forbidden") -> HTTPResponse:
    return plain_error(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "404 page not found") -> HTTPResponse:
    return plain_error(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed: Iterable[str], message: str = "Method not allowed") -> HTTPResponse:
    return plain_error(HTTPStatus.METHOD_NOT_ALLOWED, message).set_header("Allow", ", ".join(allowed))


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return plain_error(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Service Unavailable") -> HTTPResponse:
    return plain_error(HTTPStatus.SERVICE_UNAVAILABLE, message).set_header("Connection", "close")
