"""
Request handlers.

    PageHandlers       GET /, /about           (HTML, Jinja2)
    MessageHandlers    /submit, /api/messages  (form + JSON)
    StaticFileHandler  /static/*path

Every handler is ``Callable[[HTTPRequest], HTTPResponse]``.
"""

from .base import handles_errors
from .pages import PageHandlers
from .messages import MessageHandlers, decode_message_payload
from .static import StaticFileHandler

__all__ = [
    "handles_errors",
    "PageHandlers",
    "MessageHandlers",
    "decode_message_payload",
    "StaticFileHandler",
]
