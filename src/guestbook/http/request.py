"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

One raw request in, one HTTPRequest out.

    POST /submit HTTP/1.1\\r\\n                        request line
    Host: localhost:8080\\r\\n                         ┐
    Content-Type: application/x-www-form-urlencoded  │ header block
    Content-Length: 23\\r\\n                           ┘
    \\r\\n
    author=ann&content=hello                          body

The guestbook reads three things from a request:

    - the path (routing, exact "/" check for the home page)
    - url-encoded form fields (POST /submit)
    - a JSON document (POST /api/messages)

Everything the parser rejects carries the status code to answer with,
and the connection is closed afterwards:

    ┌───────┬──────────────────────────────────────────────────────────┐
    │  400  │ no blank line after the headers, garbled request line,   │
    │       │ ".." in the path, bad Content-Length, short body         │
    │  405  │ method that is not an HTTP method at all                 │
    │  413  │ more than max_request_size bytes                         │
    │  505  │ anything but HTTP/1.0 or HTTP/1.1                        │
    └───────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_WHITESPACE = " \t\n\r"
_JSON_DECODER = json.JSONDecoder()

DEFAULT_MAX_REQUEST_SIZE = 10 * 1024 * 1024

Address = Tuple[str, int]


class HTTPParseError(Exception):
    """A request that cannot be served; ``status_code`` is what to answer."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed request.

    ``headers`` keys are lowercase. ``path`` is URL-decoded and never
    carries the query string; that lives in ``query_params`` as lists
    (``?tag=a&tag=b`` → ``{"tag": ["a", "b"]}``). The router fills
    ``path_params`` from ``:name`` and ``*name`` segments.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: Address = ("", 0)

    _body_json: Any = field(default=None, repr=False, compare=False)
    _form: Optional[Dict[str, List[str]]] = field(default=None, repr=False, compare=False)

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @property
    def content_type(self) -> Optional[str]:
        """Media type only: "application/json; charset=utf-8" → "application/json"."""
        media_type = self.get_header("content-type").partition(";")[0]
        return media_type.strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.get_header("content-length", "0"))
        except ValueError:
            return 0

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 stays open unless told to close; HTTP/1.0 only if asked."""
        token = self.get_header("connection").lower()
        if self.version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"

    @property
    def json(self) -> Any:
        """
        The first JSON value in the body, or None for an empty body.

        Whatever follows that first value is not read:

            {"content": "hi"} trailing   →  {"content": "hi"}
            null                         →  None

        Raises HTTPParseError when no value can be decoded, including a
        body of nothing but whitespace.
        """
        if not self.body:
            return None
        if self._body_json is None:
            try:
                text = self.body.decode("utf-8").lstrip(JSON_WHITESPACE)
                self._body_json, _ = _JSON_DECODER.raw_decode(text)
            except (UnicodeDecodeError, ValueError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}") from e
        return self._body_json

    @property
    def form(self) -> Dict[str, List[str]]:
        """
        Fields of an url-encoded body.

        Only bodies declared as application/x-www-form-urlencoded are read.
        The query string is never merged in.
        """
        if self._form is None:
            fields: Dict[str, List[str]] = {}
            if self.content_type == FORM_CONTENT_TYPE and self.body:
                fields = parse_qs(self.body.decode("utf-8", errors="replace"), keep_blank_values=True)
            self._form = fields
        return self._form

    def get_form(self, name: str, default: str = "") -> str:
        """
        First value of a form field.

            # body: author=ann&content=hello&content=again
            request.get_form("content")  # "hello"
            request.get_form("missing")  # ""
        """
        values = self.form.get(name)
        return values[0] if values else default


class RequestParser:
    """
    Bytes to HTTPRequest.

        parser = RequestParser(max_request_size=config.max_request_size)
        request = parser.parse(raw, conn.address)

    The parser never reads from a socket. Connection.read_request() has
    already collected exactly one request (headers plus Content-Length
    bytes) by the time parse() is called.
    """

    METHODS = frozenset({
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    })
    VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    _VERSION_SYNTAX = re.compile(r"HTTP/\d\.\d")

    def __init__(self, max_request_size: int = DEFAULT_MAX_REQUEST_SIZE):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Address = ("", 0)) -> HTTPRequest:
        """
        Raises:
            HTTPParseError: With the status code to answer (see module doc).
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        head, sep, rest = data.partition(b"\r\n\r\n")
        if not sep:
            raise HTTPParseError("Incomplete request: no header terminator")

        request_line, *header_lines = head.decode("utf-8", errors="replace").split("\r\n")
        method, target, version = self._split_request_line(request_line)
        path, query_params = self._split_target(target)
        headers = self._collect_headers(header_lines)

        length = self._declared_length(headers)
        if len(rest) < length:
            raise HTTPParseError(f"Incomplete body: expected {length} bytes, got {len(rest)}")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=rest[:length],
            client_address=client_address,
        )

    def _split_request_line(self, line: str) -> Tuple[str, str, str]:
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = parts
        if not self._VERSION_SYNTAX.fullmatch(version) or not method.isalpha():
            raise HTTPParseError(f"Invalid request line: {line!r}")
        if method not in self.METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in self.VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, target, version

    @staticmethod
    def _split_target(target: str) -> Tuple[str, Dict[str, List[str]]]:
        """"/static/a%20b.css?v=2" → ("/static/a b.css", {"v": ["2"]})."""
        parts = urlsplit(target)
        path = unquote(parts.path) or "/"

        # no handler ever sees a path that climbs out of its root
        if ".." in path:
            raise HTTPParseError("Invalid path: contains ..")

        return path, parse_qs(parts.query, keep_blank_values=True)

    @staticmethod
    def _collect_headers(lines: List[str]) -> Dict[str, str]:
        """
        Lowercase names. A repeated header is joined with ", ", a line
        starting with whitespace continues the previous one, and lines
        without a colon are dropped.
        """
        headers: Dict[str, str] = {}
        last: Optional[str] = None

        for line in lines:
            if not line:
                continue
            if line[0] in " \t":
                if last is not None:
                    headers[last] = f"{headers[last]} {line.strip()}"
                continue

            name, colon, value = line.partition(":")
            name = name.strip().lower()
            if not colon or not name:
                continue

            value = value.strip()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value
            last = name

        return headers

    @staticmethod
    def _declared_length(headers: Dict[str, str]) -> int:
        raw = headers.get("content-length", "0")
        try:
            length = int(raw)
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length header: {raw!r}") from None
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length header: {raw!r}")
        return length


def parse_request(
    data: bytes,
    client_address: Address = ("", 0),
    max_size: int = DEFAULT_MAX_REQUEST_SIZE,
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
