"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

A middleware sits between the router and a handler and sees both the
request on the way in and the response on the way out:

    class Timing(Middleware):
        def __call__(self, request, next):
            ...                       # before
            response = next(request)  # inner middleware / handler
            ...                       # after
            return response

A MiddlewarePipeline composes several of them around one handler; the
first one added ends up outermost:

    pipeline = MiddlewarePipeline().add(A()).add(B())
    handler = pipeline.wrap(home)       # A → B → home → B → A

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

    Subclasses implement ``__call__(request, next)`` and either return
    ``next(request)`` (possibly inspecting it) or short-circuit with their
    own response. Exceptions from ``next`` should be allowed to propagate.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware, wrapped around a handler with ``wrap()``."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Return a handler that runs every middleware, then ``handler``.

        Wraps in reverse so the first middleware added is the outermost:
        [A, B] around h gives A(B(h)).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        wrapped.__name__ = f"{middleware.name}({getattr(next_handler, '__name__', 'handler')})"
        return wrapped
