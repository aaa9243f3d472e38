"""
Exception hierarchy for the guestbook.

    GuestbookError
    ├── ClientError(status_code, message)   4xx, caller's fault
    │   ├── ValidationError                 400 "content required", "Bad JSON"
    │   └── MethodNotAllowed(allowed)       405 "Method not allowed"
    ├── RenderError                         500 "Template error", logged
    └── TemplateLoadError                   fatal at startup

Handlers raise these; the ``handles_errors`` decorator in
``guestbook.handlers.base`` turns them into plain-text responses. Protocol
errors seen before any handler runs are ``HTTPParseError`` from the
request parser.
"""

from typing import Iterable, Optional


class GuestbookError(Exception):
    """Base class for every error the guestbook raises on purpose."""


class ClientError(GuestbookError):
    """A request the client has to fix. Never logged as a server fault."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ClientError):
    status_code = 400


class MethodNotAllowed(ClientError):
    status_code = 405

    def __init__(self, allowed: Iterable[str], message: str = "Method not allowed"):
        super().__init__(message)
        self.allowed = list(allowed)


class RenderError(GuestbookError):
    """A template failed while rendering a page."""

    def __init__(self, template: str, cause: Exception):
        super().__init__(f"rendering {template}: {cause}")
        self.template = template
        self.cause = cause


class TemplateLoadError(GuestbookError):
    """The template directory could not be loaded at startup."""
