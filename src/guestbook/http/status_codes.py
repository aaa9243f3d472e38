"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the guestbook can emit. Reason phrases come from the
standard library's ``http.HTTPStatus`` so the status line always carries
the registered wording.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK, 201 Created (POST /api/messages)                  │
    │  3xx   │ 303 See Other (after POST /submit), 304 Not Modified      │
    │  4xx   │ 400 Bad JSON / empty content, 404 unknown path,           │
    │        │ 405 wrong method on the API, 408/413 protocol errors      │
    │  5xx   │ 500 template error, 503 worker queue full                 │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from http import HTTPStatus as _StdlibStatus
from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Guestbook status codes.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.SEE_OTHER.phrase
        'See Other'
    """

    CONTINUE = 100

    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 200 OK``)."""
        return _StdlibStatus(int(self)).phrase

    @property
    def category(self) -> int:
        """Leading digit: 2 for success, 4 for client errors, ..."""
        return int(self) // 100

    @property
    def is_informational(self) -> bool:
        return self.category == 1

    @property
    def is_success(self) -> bool:
        return self.category == 2

    @property
    def is_redirect(self) -> bool:
        return self.category == 3

    @property
    def is_client_error(self) -> bool:
        return self.category == 4

    @property
    def is_server_error(self) -> bool:
        return self.category == 5

    @property
    def is_error(self) -> bool:
        return self.category >= 4
