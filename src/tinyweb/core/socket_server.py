"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The connection acceptor. It listens for connections and hands every
accepted socket to a callback. It never reads or writes request data
itself.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a TCP socket
    2. bind()      Associate the socket with an IP:PORT
                   └─ Failure here is FATAL and raised to the caller
    3. listen()    Mark socket as a "listening" socket
    4. accept()    Wait for and accept an incoming connection
                   └─ Returns a NEW socket just for that client
                   └─ Transient failures are logged, the loop goes on
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    └─────┬─────┘         └─────┬─────┘         └─────┬─────┘
          └──────────────► ThreadPool.submit() ◄──────┘

=============================================================================
TRANSIENT VS FATAL ACCEPT ERRORS
=============================================================================

    EMFILE / ENFILE      Out of file descriptors   → log, back off, retry
    ECONNABORTED         Client gave up in backlog → log, retry
    EINTR / ENOBUFS ...  Temporary                 → log, retry

    EBADF / EINVAL / ENOTSOCK
                         The listening socket itself is broken → raise

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
import time
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


# The listening socket itself is unusable; retrying cannot help
FATAL_ACCEPT_ERRNOS = frozenset({errno.EBADF, errno.EINVAL, errno.ENOTSOCK})

# Out of descriptors: give workers a moment to close some
DESCRIPTOR_EXHAUSTION_ERRNOS = frozenset({errno.EMFILE, errno.ENFILE})


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)     Main entry point                               │
    │        │                                                             │
    │        ├──► _create_socket()   socket() + SO_REUSEADDR               │
    │        ├──► bind()             Raise on failure                      │
    │        ├──► listen()                                                 │
    │        ├──► _setup_signals()   SIGTERM/SIGINT (main thread only)     │
    │        │                                                             │
    │        └──► _accept_loop()     Blocks here                           │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         accept()                                     │
    │                         Connection()                                 │
    │                         handler(conn)  → submits to thread pool      │
    │                                                                      │
    │    shutdown()         Stop the loop (any thread, signal handler)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, ...).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set once listen() has succeeded; lets tests wait for the server
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the configured one before binding."""
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening TCP socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting must not fail with "Address already in use" while old
        # sockets sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up every second to notice shutdown()
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that trigger a graceful shutdown.

        Python only allows signal handlers on the main thread, so a server
        started from a background thread (as in tests) skips this.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown() is called.

        Args:
            connection_handler: Called on the accepting thread with each new
                                connection. Must return quickly.

        Raises:
            OSError: If binding fails, or the listening socket breaks.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections and hand each one off.

        Args:
            connection_handler: Callback for each new connection.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Poll self._running
            except OSError as e:
                if not self._running:
                    break  # Socket closed under us by shutdown
                if e.errno in FATAL_ACCEPT_ERRNOS:
                    logger.error(f"Listening socket unusable: {e}")
                    raise

                logger.warning(f"Accept error: {e}")
                if e.errno in DESCRIPTOR_EXHAUSTION_ERRNOS:
                    time.sleep(0.1)
                continue

            logger.info(f"Request from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                line_limit=self.config.line_limit,
                timeout=self.config.timeout,
            )

            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from any thread or a signal handler, and more than once.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the server is listening.

        Returns:
            True if listening, False on timeout.
        """
        return self._ready_event.wait(timeout)
