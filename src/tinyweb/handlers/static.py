"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Streams a resolved file back to the client, byte for byte.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                                                │
    │  Server: tinyweb/0.1.0\r\n                                          │
    │  Content-Type: text/html\r\n       ← ALWAYS text/html               │
    │  \r\n                                                               │
    │  <file bytes, copied in 1 KB chunks until EOF>                      │
    └─────────────────────────────────────────────────────────────────────┘

The content type is not derived from the file extension.

The file is streamed rather than read whole, so a large file never sits
in memory. The flip side: if a read or write fails halfway, the client has
already received a 200 head and part of the body. There is no way to take
that back; the connection is simply dropped.

=============================================================================
"""

import logging

from ..core.connection import Connection
from ..http.response import response_head, write_file, CHUNK_SIZE
from ..http.status_codes import HTTPStatus
from .resolver import ResolvedTarget


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves resolved files with a 200 envelope.

    The caller must have drained the request headers already.
    """

    def __init__(self, server_name: str, chunk_size: int = CHUNK_SIZE):
        """
        Args:
            server_name: Value of the Server header.
            chunk_size: Bytes per read while copying the file.
        """
        self.server_name = server_name
        self.chunk_size = chunk_size

    def serve(self, conn: Connection, target: ResolvedTarget) -> int:
        """
        Send the file behind target.

        Returns:
            Number of body bytes sent.

        Raises:
            OSError: On any read or write failure (response may be partial).
        """
        conn.write(response_head(HTTPStatus.OK, self.server_name))
        size = write_file(conn, target.filesystem_path, self.chunk_size)
        conn.flush()

        logger.debug(f"[{conn.id}] Served {target.filesystem_path} ({size} bytes)")
        return size
