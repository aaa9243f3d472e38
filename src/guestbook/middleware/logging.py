"""
=============================================================================
REQUEST LOGGING
=============================================================================

One access-log record per request, written after the handler returns:

    GET / 200 2.871ms
    POST /submit 303 0.412ms
    POST /api/messages 400 0.118ms
    DELETE /api/messages 405 0.051ms

Records go to the ``guestbook.access`` logger at INFO so they can be
routed or silenced independently of the application loggers:

    logging.getLogger("guestbook.access").setLevel(logging.WARNING)

The middleware never touches the response. If the handler raises, the
record is still written (with status 500) and the exception continues
up to the server, which answers 500.

=============================================================================
"""

import time
import logging
from dataclasses import dataclass

from .base import Middleware, MiddlewarePipeline, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger("guestbook.access")


@dataclass
class RequestLog:
    """One access-log entry."""

    method: str
    path: str
    status_code: int
    duration_ms: float

    def to_text(self) -> str:
        return f"{self.method} {self.path} {self.status_code} {self.duration_ms:.3f}ms"


class LoggingMiddleware(Middleware):
    """
    Access logging.

    Args:
        log_level: Level for the records (INFO unless you want them quieter).
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.perf_counter()
        status = HTTPStatus.INTERNAL_SERVER_ERROR

        try:
            response = next(request)
            # Responses default to 200 when the handler never set a status
            status = response.status
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            entry = RequestLog(
                method=request.method,
                path=request.path,
                status_code=int(status),
                duration_ms=duration_ms,
            )
            logger.log(self.log_level, entry.to_text())


def log_requests(handler: NextHandler, log_level: int = logging.INFO) -> NextHandler:
    """
    Wrap a single handler with access logging.

        router.add_route("/about", log_requests(pages.about))
    """
    return MiddlewarePipeline().add(LoggingMiddleware(log_level)).wrap(handler)
