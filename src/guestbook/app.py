"""
Application assembly: store, templates and handlers wired into a server.

    create_app(config)
        ├── Templates.load(config.template_dir)     fails fast
        ├── MessageStore.with_welcome()
        └── HTTPServer(config) with routes, first match wins:

            /static/*path   StaticFileHandler        (not logged)
            /about          PageHandlers.about       (logged)
            /submit         MessageHandlers.submit   (logged)
            /api/messages   MessageHandlers.api      (logged)
            /*rest          PageHandlers.home        (logged; 404 unless "/")
"""

import logging
from typing import Optional

from .config import ServerConfig
from .errors import TemplateLoadError
from .handlers import MessageHandlers, PageHandlers, StaticFileHandler
from .middleware import log_requests
from .server import HTTPServer
from .store import MessageStore
from .templates import Templates


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ServerConfig] = None,
    store: Optional[MessageStore] = None,
    templates: Optional[Templates] = None,
) -> HTTPServer:
    """
    Build a ready-to-serve guestbook.

    Args:
        config: Server settings (defaults if omitted).
        store: Message store to serve (a fresh welcome-seeded one if omitted).
        templates: Pre-loaded templates (loaded from config.template_dir if
            omitted).

    Raises:
        TemplateLoadError: Templates or static directory unusable.
    """
    config = config or ServerConfig()

    if templates is None:
        templates = Templates.load(config.template_dir)
    if store is None:
        store = MessageStore.with_welcome()

    try:
        static = StaticFileHandler(config.static_dir)
    except ValueError as e:
        raise TemplateLoadError(str(e)) from e

    pages = PageHandlers(store, templates)
    messages = MessageHandlers(store)

    server = HTTPServer(config)
    router = server.router
    router.add_route("/static/*path", static.handle)
    router.add_route("/about", log_requests(pages.about))
    router.add_route("/submit", log_requests(messages.submit))
    router.add_route("/api/messages", log_requests(messages.api))
    # "/" is also the fallback for every unknown path
    router.add_route("/*rest", log_requests(pages.home))

    logger.debug("Guestbook assembled with %d messages", len(store))
    return server
