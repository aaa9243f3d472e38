"""
HTML pages: the home page (form + message list) and the about page.
"""

from datetime import datetime
from typing import Callable, Optional

from .base import handles_errors
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, not_found
from ..store import MessageStore, utc_now
from ..templates import PageData, Templates


class PageHandlers:
    """Renders the HTML pages. Both answer any method; only the path matters."""

    def __init__(
        self,
        store: MessageStore,
        templates: Templates,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.templates = templates
        self._clock = clock or utc_now

    @handles_errors
    def home(self, request: HTTPRequest) -> HTTPResponse:
        """
        The guestbook itself.

        Registered as the catch-all route, so it is also what every unknown
        path reaches; anything but exactly "/" is a 404.
        """
        if request.path != "/":
            return not_found()

        data = PageData(title="Home", messages=self.store.snapshot(), now=self._clock())
        return self._page("index.html", data)

    @handles_errors
    def about(self, request: HTTPRequest) -> HTTPResponse:
        return self._page("about.html", PageData(title="About", now=self._clock()))

    def _page(self, template: str, data: PageData) -> HTTPResponse:
        html = self.templates.render(template, data)
        return ResponseBuilder().html(html).build()
