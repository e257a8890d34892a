"""
=============================================================================
TINYWEB - A Tiny Concurrent Web Server
=============================================================================

Serves static files and runs CGI programs over HTTP/1.1, one request per
connection, on a fixed pool of worker threads.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     TINYWEB ARCHITECTURE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. CONNECTION ACCEPTOR                                            │
    │      - One listening TCP socket, one accepting thread               │
    │      - Every accepted connection becomes one pool task              │
    │                                                                      │
    │   2. WORKER POOL                                                    │
    │      - N threads created at startup, never resized                  │
    │      - Unbounded FIFO queue of pending connections                  │
    │                                                                      │
    │   3. REQUEST HANDLING                                               │
    │      - GET and POST only; anything else gets 501                   │
    │      - Files are served as text/html                               │
    │      - Executable files (or any URL with "?") run as CGI            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tinyweb/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tinyweb)
    ├── server.py            # WebServer: accept → pool → dispatch
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # Buffered connection wrapper
    │   └── thread_pool.py   # Fixed-size worker pool
    ├── http/                # Protocol pieces
    │   ├── reader.py        # Line reader, header draining, Content-Length
    │   ├── request.py       # Request line parsing
    │   ├── response.py      # Response heads, file streaming
    │   └── status_codes.py  # The five status codes used
    └── handlers/            # What happens to a parsed request
        ├── resolver.py      # URL path → file
        ├── static.py        # Static file serving
        ├── cgi.py           # CGI execution
        └── errors.py        # 400/404/500/501 pages

=============================================================================
QUICK START
=============================================================================

    from tinyweb import WebServer, ServerConfig

    server = WebServer(ServerConfig(host="0.0.0.0", port=8000, threads=8))
    server.run()

Or from a shell:

    tinyweb 0.0.0.0:8000 --threads 8 --root ./assets

=============================================================================
"""

__version__ = "0.1.0"

from .server import WebServer, run
from .config import ServerConfig, parse_address

__all__ = ["WebServer", "ServerConfig", "parse_address", "run", "__version__"]
