"""
Handler plumbing shared by the page and message handlers.

``handles_errors`` is the boundary where the exceptions from
``guestbook.errors`` become HTTP responses:

    ValidationError("content required")  → 400 content required
    MethodNotAllowed(["GET", "POST"])     → 405 Method not allowed + Allow
    RenderError(...)                      → 500 Template error (logged)

Anything else propagates to the server, which logs it and answers 500.
"""

import functools
import logging
from typing import Callable

from ..errors import ClientError, MethodNotAllowed, RenderError
from ..http.response import HTTPResponse, plain_error, method_not_allowed, internal_error
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


def handles_errors(handler: Callable[..., HTTPResponse]) -> Callable[..., HTTPResponse]:
    """Decorator converting guestbook errors raised by ``handler`` into responses."""

    @functools.wraps(handler)
    def wrapper(*args, **kwargs) -> HTTPResponse:
        try:
            return handler(*args, **kwargs)
        except MethodNotAllowed as e:
            return method_not_allowed(e.allowed, e.message)
        except ClientError as e:
            return plain_error(HTTPStatus(e.status_code), e.message)
        except RenderError as e:
            logger.error("template: %s", e)
            return internal_error("Template error")

    return wrapper
