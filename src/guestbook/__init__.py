"""
guestbook: a small web guestbook served by a from-scratch HTTP/1.1 server.

    from guestbook import create_app, ServerConfig

    server = create_app(ServerConfig(port=8080))
    server.run()

Messages live in memory only; restarting the process starts over from the
welcome message.
"""

__version__ = "1.0.0"

from .app import create_app
from .config import ServerConfig
from .server import HTTPServer, ServerState
from .store import Message, MessageStore

__all__ = [
    "create_app",
    "ServerConfig",
    "HTTPServer",
    "ServerState",
    "Message",
    "MessageStore",
    "__version__",
]
