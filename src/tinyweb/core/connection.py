"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for the lifetime of ONE request.

=============================================================================
ONE STREAM, TWO DIRECTIONS
=============================================================================

The socket is exposed as two buffered file objects:

    ┌─────────────────────────────────────────────────────────────────┐
    │                                                                  │
    │   client ──► socket ──► rfile (BufferedReader)                  │
    │                           │                                      │
    │                           ├── read_line()        request line    │
    │                           ├── discard_headers()  header lines    │
    │                           └── read_exact(n)      POST body       │
    │                                                                  │
    │   client ◄── socket ◄── wfile (BufferedWriter)                  │
    │                           │                                      │
    │                           ├── write()            head + body     │
    │                           └── flush()            push it out     │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

All reads go through the SAME rfile. Header lines and the body share its
buffer, so the body must never be read with a raw recv() once line
reading has started.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING
     │             │                 │                 │
     │             ▼                 ▼                 ▼
     └──────────► CLOSING ◄──────────┴─────────────────┘
                    │
                    ▼
                  CLOSED

There is no keep-alive: once the response is flushed the connection is
closed.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, BinaryIO
import uuid

from ..http.reader import (
    LINE_LIMIT,
    read_line as _read_line,
    discard_headers as _discard_headers,
    read_content_length as _read_content_length,
)


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""
    NEW = "new"              # Just accepted, haven't read anything yet
    READING = "reading"      # Reading request line / headers / body
    PROCESSING = "processing"  # Resolving the target, running CGI
    WRITING = "writing"      # Sending response data
    CLOSING = "closing"      # About to close (shutdown sequence)
    CLOSED = "closed"        # Connection closed, socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        line_limit: Maximum bytes per request/header line.
        timeout: Socket timeout in seconds, None to block forever.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    # Configuration (passed from ServerConfig)
    line_limit: int = LINE_LIMIT
    timeout: Optional[float] = None

    # Buffered views of the socket (created in __post_init__)
    rfile: BinaryIO = field(init=False, repr=False)
    wfile: BinaryIO = field(init=False, repr=False)

    def __post_init__(self):
        """Apply the timeout and open the buffered reader/writer."""
        # settimeout(None) puts the socket in plain blocking mode
        self.socket.settimeout(self.timeout)

        self.rfile = self.socket.makefile("rb")
        self.wfile = self.socket.makefile("wb")

    # =========================================================================
    # PROPERTIES: Convenient accessors
    # =========================================================================

    @property
    def peer(self) -> str:
        """Client address as "host:port"."""
        return f"{self.address[0]}:{self.address[1]}"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> bytes:
        """Read one request or header line (terminator stripped)."""
        self.state = ConnectionState.READING
        return _read_line(self.rfile, self.line_limit)

    def discard_headers(self) -> None:
        """Drain the remaining header lines up to the blank line."""
        self.state = ConnectionState.READING
        _discard_headers(self.rfile, self.line_limit)

    def read_content_length(self) -> Optional[int]:
        """Scan the headers for Content-Length; see http.reader."""
        self.state = ConnectionState.READING
        return _read_content_length(self.rfile, self.line_limit)

    def read_exact(self, size: int) -> bytes:
        """
        Read exactly size bytes of request body.

        Raises:
            ConnectionError: If the client closes the stream early.
        """
        self.state = ConnectionState.READING
        data = self.rfile.read(size)
        if len(data) < size:
            raise ConnectionError(
                f"Client closed connection after {len(data)} of {size} body bytes"
            )
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def write(self, data: bytes) -> None:
        """Buffer response bytes; raises OSError if the client is gone."""
        self.state = ConnectionState.WRITING
        self.wfile.write(data)

    def flush(self) -> None:
        """Push everything written so far onto the wire."""
        self.wfile.flush()

    # =========================================================================
    # CLOSING: Properly terminate the connection
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. Flush whatever the response left in the write buffer
        2. shutdown(SHUT_WR): send FIN so the client sees end-of-body
        3. Drain unread input, so close() does not turn into a RST that
           destroys the response before the client read it
        4. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return  # Already closed

        self.state = ConnectionState.CLOSING

        try:
            self.wfile.flush()
        except OSError:
            pass  # Client already gone, nothing left to deliver

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)  # Quick timeout
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # socket.timeout is an OSError too

        for f in (self.rfile, self.wfile):
            try:
                f.close()
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER: For use with 'with' statement
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' statement for automatic cleanup:

            with conn:
                line = conn.read_line()
                conn.write(response)
            # Connection closed here, even if an exception escaped
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
