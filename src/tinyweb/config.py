"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the web server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── tinyweb 0.0.0.0:8000 --threads 16                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TINYWEB_THREADS=16 tinyweb 0.0.0.0:8000                   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything here is read once at startup and never changed while serving.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from . import __version__


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    NETWORK SETTINGS
    - host, port, backlog, timeout

    THREADING
    - threads

    FILESYSTEM
    - document_root, error_pages_dir

    PROTOCOL LIMITS
    - line_limit, chunk_size

    LOGGING / IDENTITY
    - log_level, server_name
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """The IP address to bind to. "0.0.0.0" for all interfaces."""

    port: int = 8000
    """The port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = block forever (no timeout is imposed by default).
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    threads: int = 8
    """Number of worker threads, fixed for the life of the server."""

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "assets"
    """
    Directory URL paths are resolved against. The URL path is appended
    as-is: "/index.html" → "assets/index.html".
    """

    error_pages_dir: Optional[str] = None
    """
    Directory holding 400.html, 404.html, 500.html and 501.html.
    None = same as document_root.
    """

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL LIMITS
    # ─────────────────────────────────────────────────────────────────────

    line_limit: int = 1024
    """Longest request/header line kept; longer lines are truncated."""

    chunk_size: int = 1024
    """Bytes per read when streaming files and relaying POST bodies."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    server_name: str = f"tinyweb/{__version__}"
    """Value of the Server header on every response."""

    @property
    def error_pages(self) -> str:
        """Directory the error assets are read from."""
        return self.error_pages_dir or self.document_root

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        TINYWEB_HOST      Server host (default: 127.0.0.1)
        TINYWEB_PORT      Server port (default: 8000)
        TINYWEB_THREADS   Worker threads (default: 8)
        TINYWEB_ROOT      Document root (default: assets)
        TINYWEB_TIMEOUT   Socket timeout in seconds (default: none)
        TINYWEB_LOG_LEVEL Logging level (default: INFO)
        """
        timeout = os.getenv("TINYWEB_TIMEOUT")
        return cls(
            host=os.getenv("TINYWEB_HOST", "127.0.0.1"),
            port=int(os.getenv("TINYWEB_PORT", "8000")),
            threads=int(os.getenv("TINYWEB_THREADS", "8")),
            document_root=os.getenv("TINYWEB_ROOT", "assets"),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("TINYWEB_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.threads < 1:
            raise ValueError(f"threads must be >= 1, got {self.threads}")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.line_limit < 1:
            raise ValueError("line_limit must be >= 1")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not os.path.isdir(self.document_root):
            raise ValueError(f"Document root does not exist: {self.document_root}")


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" string.

    An empty host (":8000") means all interfaces.

    Raises:
        ValueError: If there is no port or it is not a number.
    """
    host, separator, port = address.rpartition(":")
    if not separator:
        raise ValueError(f"Address must be HOST:PORT, got {address!r}")

    return host or "0.0.0.0", int(port)
