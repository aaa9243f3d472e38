"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the guestbook server in one dataclass. The command line
(see __main__.py) is the only source of overrides; nothing is read from
the environment or from files.

    ┌─────────────────┬───────────────────────────────────────────────────┐
    │  Group          │  Fields                                           │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │  Network        │  host, port, backlog, buffer_size                 │
    │  Timeouts       │  read_timeout, write_timeout, idle_timeout,       │
    │                 │  shutdown_timeout                                 │
    │  HTTP           │  max_request_size, server_name                    │
    │  Workers        │  min_workers, max_workers, queue_size             │
    │  Assets         │  template_dir, static_dir                         │
    │  Logging        │  log_level                                        │
    └─────────────────┴───────────────────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_TEMPLATE_DIR = PACKAGE_DIR / "web" / "templates"
DEFAULT_STATIC_DIR = PACKAGE_DIR / "web" / "static"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the guestbook server.

        ServerConfig()                          # 0.0.0.0:8080, shipped assets
        ServerConfig(host="127.0.0.1", port=0)  # any free port (tests)
    """

    # NETWORK

    host: str = "0.0.0.0"
    """Interface to bind. "0.0.0.0" listens on all of them."""

    port: int = 8080
    """TCP port. 0 asks the OS for a free one; HTTPServer.address reports it."""

    backlog: int = 128
    """Kernel accept queue length."""

    buffer_size: int = 8192
    """Bytes per recv() call."""

    # TIMEOUTS (seconds)

    read_timeout: float = 10.0
    """Deadline for reading one full request."""

    write_timeout: float = 15.0
    """Deadline for sending one response."""

    idle_timeout: float = 60.0
    """How long a keep-alive connection may wait for its next request."""

    shutdown_timeout: float = 10.0
    """How long the drain waits for in-flight requests before cutting them."""

    # HTTP

    max_request_size: int = 10 * 1024 * 1024
    """Largest accepted request (headers plus body); larger gets 413."""

    server_name: str = "guestbook/1.0"
    """Value of the Server response header."""

    # WORKERS

    min_workers: int = 4
    max_workers: int = 64
    queue_size: int = 100
    """Accepted connections waiting for a worker before new ones get 503."""

    # ASSETS

    template_dir: Path = DEFAULT_TEMPLATE_DIR
    static_dir: Path = DEFAULT_STATIC_DIR

    # LOGGING

    log_level: str = "INFO"

    def __post_init__(self):
        self.template_dir = Path(self.template_dir)
        self.static_dir = Path(self.static_dir)
        self.log_level = self.log_level.upper()

    def validate(self) -> None:
        """
        Reject impossible settings before anything is bound or started.

        Raises:
            ValueError: Naming the first offending field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        for name in ("read_timeout", "write_timeout", "idle_timeout", "shutdown_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")
