"""
=============================================================================
RESPONSE ENVELOPE
=============================================================================

Every response this server sends starts the same way:

    ┌─────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\r\n                  ← status line             │
    │  Server: tinyweb/0.1.0\r\n            ← server identification   │
    │  Content-Type: text/html\r\n          ← omitted for CGI output  │
    │  \r\n                                 ← omitted for CGI output  │
    │  <body bytes>                                                   │
    └─────────────────────────────────────────────────────────────────┘

For a CGI response the program itself prints its Content-Type and the
blank line, so the server stops after the Server header.

There is no Content-Length: the connection is closed after the body, and
closing is what tells the client the body is over.

=============================================================================
"""

from typing import Optional

from .status_codes import HTTPStatus


CHUNK_SIZE = 1024

DEFAULT_CONTENT_TYPE = "text/html"


def response_head(
    status: HTTPStatus,
    server_name: str,
    content_type: Optional[str] = DEFAULT_CONTENT_TYPE,
) -> bytes:
    """
    Build the head of a response.

    Args:
        status: Response status.
        server_name: Value of the Server header, e.g. "tinyweb/0.1.0".
        content_type: Content-Type value. None leaves out both the header
                      and the blank line that ends the head.

    Returns:
        The head as bytes, ready to be written to the socket.
    """
    lines = [status.status_line, f"Server: {server_name}"]

    if content_type is not None:
        lines.append(f"Content-Type: {content_type}")
        lines.append("")

    return ("\r\n".join(lines) + "\r\n").encode("latin-1")


def write_file(conn, path: str, chunk_size: int = CHUNK_SIZE) -> int:
    """
    Copy a file to the connection in fixed-size chunks.

    Args:
        conn: Connection to write to.
        path: File to copy.
        chunk_size: Bytes per read.

    Returns:
        Number of bytes written.

    Raises:
        OSError: If the file cannot be read or the socket write fails.
    """
    written = 0
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            conn.write(chunk)
            written += len(chunk)
    return written
