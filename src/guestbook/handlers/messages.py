"""
=============================================================================
MESSAGE HANDLERS
=============================================================================

The two ways to post a message, plus the read API.

    ┌────────────────────────┬────────────────────────────────────────────┐
    │  POST /submit          │  html form; always 303 → "/"               │
    │  (any other method)    │  303 → "/", nothing stored                 │
    ├────────────────────────┼────────────────────────────────────────────┤
    │  GET  /api/messages    │  200 [Message, ...] newest first           │
    │  POST /api/messages    │  201 Message | 400 Bad JSON |              │
    │                        │  400 content required                      │
    │  (any other method)    │  405 Method not allowed                    │
    └────────────────────────┴────────────────────────────────────────────┘

The form endpoint trims author and content before storing them and drops
an empty submission without telling the user. The API stores what it was
sent and only trims to decide whether content is empty.

API bodies are JSON objects. Keys match case-insensitively ("Content"
fills content), unknown keys are ignored, and null counts as missing.
Only the first JSON value is read; anything after it is ignored. A bare
null body is an empty object, so it fails on "content required". Anything
else (not an object, a non-string value, broken JSON, an empty body) is
"Bad JSON".

=============================================================================
"""

from typing import Tuple

from .base import handles_errors
from ..errors import MethodNotAllowed, ValidationError
from ..http.request import HTTPRequest, HTTPParseError
from ..http.response import HTTPResponse, created, ok, see_other
from ..store import MessageStore


API_METHODS = ("GET", "POST")


def decode_message_payload(request: HTTPRequest) -> Tuple[str, str]:
    """
    Pull ``(author, content)`` out of a JSON request body.

    Raises:
        ValidationError: "Bad JSON" for anything that is not an object with
            string (or null) author/content values. A bare null body
            decodes to two empty strings.
    """
    if not request.body:
        raise ValidationError("Bad JSON")
    try:
        data = request.json
    except HTTPParseError as e:
        raise ValidationError("Bad JSON") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Bad JSON")

    fields = {"author": "", "content": ""}
    for key, value in data.items():
        name = key.lower()
        if name not in fields or value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError("Bad JSON")
        fields[name] = value

    return fields["author"], fields["content"]


class MessageHandlers:
    """Form submission and JSON API over one MessageStore."""

    def __init__(self, store: MessageStore):
        self.store = store

    def submit(self, request: HTTPRequest) -> HTTPResponse:
        if request.method != "POST":
            return see_other("/")

        author = request.get_form("author").strip()
        content = request.get_form("content").strip()

        if content:
            self.store.insert(author, content)

        return see_other("/")

    @handles_errors
    def api(self, request: HTTPRequest) -> HTTPResponse:
        if request.method == "GET":
            return ok([message.to_dict() for message in self.store.snapshot()])

        if request.method == "POST":
            author, content = decode_message_payload(request)
            if not content.strip():
                raise ValidationError("content required")
            message = self.store.insert(author, content)
            return created(message.to_dict())

        raise MethodNotAllowed(API_METHODS)
