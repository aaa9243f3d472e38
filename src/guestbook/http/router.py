"""
=============================================================================
URL ROUTER
=============================================================================

Maps request paths to handlers. Routes are tried in registration order and
the first match wins, so the catch-all goes last:

    ┌──────────┬──────────────────┬──────────────────────────────────────┐
    │  Method  │  Pattern         │  Handler                             │
    ├──────────┼──────────────────┼──────────────────────────────────────┤
    │  ANY     │  /static/*path   │  StaticFileHandler (not logged)      │
    │  ANY     │  /about          │  PageHandlers.about                  │
    │  ANY     │  /submit         │  MessageHandlers.submit              │
    │  ANY     │  /api/messages   │  MessageHandlers.api                 │
    │  ANY     │  /*rest          │  PageHandlers.home (404 unless "/")  │
    └──────────┴──────────────────┴──────────────────────────────────────┘

Paths are matched exactly as received; "/about/" is not "/about" and
falls through to the catch-all.

Pattern segments:

    about      literal
    :id        one path segment     → request.path_params["id"]
    *path      the rest of the path → request.path_params["path"]

Each pattern is compiled once, at registration:

    "/static/*path"  →  ^/static/(?P<path>.*)$
    "/"              →  ^/$

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]

ALL_METHODS = ["DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"]


def compile_path(path: str) -> Tuple["re.Pattern[str]", List[str]]:
    """
    "/messages/:id" → (^/messages/(?P<id>[^/]+)$, ["id"])

    Anything after a ``*name`` segment is ignored; the wildcard already
    swallows it.
    """
    names: List[str] = []
    pieces: List[str] = []

    for segment in filter(None, path.split("/")):
        kind, name = segment[0], segment[1:]
        if kind == ":":
            names.append(name)
            pieces.append(f"(?P<{name}>[^/]+)")
        elif kind == "*":
            names.append(name or "wildcard")
            pieces.append(f"(?P<{names[-1]}>.*)")
            break
        else:
            pieces.append(re.escape(segment))

    return re.compile("^/" + "/".join(pieces) + "$"), names


@dataclass
class Route:
    """A URL pattern bound to a handler. ``method=None`` accepts any method."""

    path: str
    method: Optional[str]
    handler: Handler

    _pattern: "re.Pattern[str]" = field(init=False, repr=False)
    _param_names: List[str] = field(init=False, repr=False)

    def __post_init__(self):
        if self.method:
            self.method = self.method.upper()
        self._pattern, self._param_names = compile_path(self.path)

    def accepts(self, method: str) -> bool:
        return self.method is None or self.method == method.upper()

    def params_for(self, path: str) -> Optional[Dict[str, str]]:
        """Captured path parameters, or None if ``path`` does not fit."""
        found = self._pattern.match(path)
        return found.groupdict() if found else None


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Example:
        router = Router()

        @router.get("/static/*path")
        def static(request):
            return ok(request.path_params["path"])

        router.add_route("/api/messages", api)   # any method
        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(self, path: str, handler: Handler, method: Optional[str] = None) -> Route:
        route = Route(path, method, handler)
        self._routes.append(route)
        return route

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); the handler is returned unchanged."""
        def register(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return register

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def _candidates(self, path: str):
        """(route, params) for every route whose pattern fits, in order."""
        for route in self._routes:
            params = route.params_for(path)
            if params is not None:
                yield route, params

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        for route, params in self._candidates(path):
            if route.accepts(method):
                return RouteMatch(route, params)
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods some route accepts for ``path``; feeds the Allow header."""
        methods = set()
        for route, _ in self._candidates(path):
            if route.method is None:
                return list(ALL_METHODS)
            methods.add(route.method)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch ``request``: the first matching route's handler, else 405
        when the path exists under other methods, else 404.
        """
        found = self.match(request.method, request.path)
        if found is None:
            allowed = self.get_allowed_methods(request.path)
            return method_not_allowed(allowed) if allowed else not_found()

        request.path_params = found.params
        return found.route.handler(request)

    def routes(self) -> List[Route]:
        return list(self._routes)

    def log_routes(self) -> None:
        for route in self._routes:
            logger.debug("route %-6s %s", route.method or "ANY", route.path)
