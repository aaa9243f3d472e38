"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Turns bytes from a socket into HTTPRequest objects and HTTPResponse objects
back into bytes, and decides which handler sees each request.

    ┌───────────────────┬──────────────────────────────────────────────────┐
    │  request.py       │  RequestParser → HTTPRequest (headers, query,    │
    │                   │  form fields, JSON body)                         │
    │  response.py      │  ResponseBuilder → HTTPResponse → bytes          │
    │  router.py        │  path pattern → handler, first match wins        │
    │  status_codes.py  │  HTTPStatus with reason phrases                  │
    │  mime_types.py    │  file extension → Content-Type                   │
    └───────────────────┴──────────────────────────────────────────────────┘

    REQUEST:                          RESPONSE:
    GET /about HTTP/1.1\\r\\n            HTTP/1.1 200 OK\\r\\n
    Host: localhost:8080\\r\\n          Content-Type: text/html\\r\\n
    \\r\\n                              \\r\\n
                                      <!DOCTYPE html>...

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    see_other,           # 303 See Other
    plain_error,         # any status, text/plain body
    forbidden,           # 403
    not_found,           # 404 "404 page not found"
    method_not_allowed,  # 405 + Allow
    internal_error,      # 500
    service_unavailable, # 503
)
from .router import Router, Route, Handler
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "see_other",
    "plain_error",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "service_unavailable",

    # Routing
    "Router",
    "Route",
    "Handler",

    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
