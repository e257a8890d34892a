"""
=============================================================================
WEB SERVER
=============================================================================

Ties the components together into the request-dispatch pipeline.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. ACCEPT                 (accepting thread)
       └── SocketServer accepts the TCP connection

    2. QUEUE                  (accepting thread)
       └── One Task per connection goes into the ThreadPool

    3. READ + PARSE           (worker thread from here on)
       └── read_line() → parse_request_line()
       └── not GET/POST → 501, done

    4. RESOLVE
       └── PathResolver maps the URL path to a file
       └── no file → drain headers, 404, done

    5. DISPATCH
       └── executable file OR query string → CGIHandler
       └── otherwise → drain headers, StaticFileHandler

    6. CLOSE
       └── Connection closed whatever happened above

=============================================================================
FAILURE CONTAINMENT
=============================================================================

    Protocol errors     → 400 / 501 envelope, connection closed
    Resolution errors   → 404 envelope
    Execution errors    → 500 envelope
    Transport errors    → logged, connection dropped (no envelope)
    Anything else       → escapes to the worker, which logs it and moves on

No failure on one connection ever reaches the accept loop or another
connection.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .http import HTTPParseError, HTTPStatus, parse_request_line
from .handlers import PathResolver, StaticFileHandler, CGIHandler, ErrorResponder


logger = logging.getLogger(__name__)


class WebServer:
    """
    A tiny concurrent web server with static files and CGI.

    Usage:
        server = WebServer(ServerConfig(port=8000, threads=8))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the server and start its worker threads.

        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(self.config.threads)

        # ─────────────────────────────────────────────────────────────────
        # REQUEST HANDLERS
        # ─────────────────────────────────────────────────────────────────
        self._resolver = PathResolver(self.config.document_root)
        self._errors = ErrorResponder(
            self.config.error_pages,
            self.config.server_name,
            self.config.chunk_size,
        )
        self._static = StaticFileHandler(self.config.server_name, self.config.chunk_size)
        self._cgi = CGIHandler(self._errors, self.config.server_name, self.config.chunk_size)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    @property
    def address(self):
        """The (host, port) the server is bound to."""
        return self._socket_server.address

    @property
    def thread_pool(self) -> ThreadPool:
        return self._thread_pool

    def run(self):
        """
        Serve until shut down (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"with {self.config.threads} threads, root {self.config.document_root!r}"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the accept loop to stop; run() returns once it has."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("tinyweb").setLevel(level)

    def _shutdown(self):
        """Stop the pool once the accept loop is gone."""
        logger.info("Shutting down server...")

        # In-flight requests finish; nothing new can arrive
        self._thread_pool.shutdown(wait=True)

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accepting thread).

        Args:
            conn: The client connection.
        """
        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """
        Handle one connection from start to finish (runs on a worker).

        Transport failures are logged here. Other exceptions propagate to
        the worker, which logs them; the connection is closed either way.

        Args:
            conn: The client connection.
        """
        with conn:
            try:
                self._dispatch(conn)
            except OSError as e:
                logger.warning(f"Handle request from {conn.peer} failed for {e}")
            else:
                logger.info(f"Responded to request from {conn.peer}")

    def _dispatch(self, conn: Connection):
        """
        Read, parse and route a single request.

        Raises:
            OSError: On socket, pipe or error-asset failures.
        """
        # ─────────────────────────────────────────────────────────────────
        # READ + PARSE THE REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        line = conn.read_line()

        try:
            request = parse_request_line(line)
        except HTTPParseError as e:
            logger.info(f"[{conn.id}] Rejecting request from {conn.peer}: {e}")
            if e.status_code == HTTPStatus.NOT_IMPLEMENTED:
                # Nothing else about this request is looked at
                self._errors.unimplemented(conn)
            else:
                conn.discard_headers()
                self._errors.bad_request(conn)
            return

        logger.debug(f"[{conn.id}] {request.method} {request.path} {request.protocol}")
        conn.state = ConnectionState.PROCESSING

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE
        # ─────────────────────────────────────────────────────────────────
        target = self._resolver.resolve(request.path)
        if target is None:
            conn.discard_headers()
            self._errors.not_found(conn)
            return

        # ─────────────────────────────────────────────────────────────────
        # DISPATCH
        # ─────────────────────────────────────────────────────────────────
        # A query string forces the CGI branch even for a plain file; the
        # spawn then fails and the client gets a 500
        if target.is_executable or request.has_query:
            self._cgi.execute(conn, target, request)
        else:
            conn.discard_headers()
            self._static.serve(conn, target)


def run(address: str, threads: int = 8, **config) -> None:
    """
    Start a web server on "host:port" with a pool of threads (blocking).

    Example:
        tinyweb.run("localhost:8000", 8)
    """
    from .config import parse_address

    host, port = parse_address(address)
    WebServer(ServerConfig(host=host, port=port, threads=threads, **config)).run()
