"""
=============================================================================
REQUEST LINE READER
=============================================================================

Reads the request line and header lines straight off the socket stream,
one byte at a time.

=============================================================================
WHY BYTE AT A TIME?
=============================================================================

The request body (POST) follows the headers on the SAME stream. If we
slurped a big chunk to find the end of the headers, part of the body would
end up in our hands instead of being piped to the CGI program:

    ┌─────────────────────────────────────────────────────────────────┐
    │  POST /cgi/echo HTTP/1.1\r\n         ← read_line()              │
    │  Content-Length: 11\r\n              ← read_content_length()    │
    │  Host: localhost\r\n                 ← discard_headers()        │
    │  \r\n                                ← discard_headers() stops  │
    │  hello=world                         ← left untouched for CGI   │
    └─────────────────────────────────────────────────────────────────┘

The stream is a buffered reader (socket.makefile("rb")), so reading one
byte at a time does not mean one recv() syscall per byte.

=============================================================================
LINE TERMINATORS
=============================================================================

    "GET / HTTP/1.1\r\n"  →  "GET / HTTP/1.1"   (CRLF collapsed)
    "GET / HTTP/1.1\n"    →  "GET / HTTP/1.1"   (bare LF accepted)
    "GET / HTTP/1.1\r"    →  "GET / HTTP/1.1"   (bare CR accepted)

A line longer than max_len is truncated, NOT rejected. The remainder stays
in the stream and comes back as the next "line". Callers must not assume a
header line they get back is complete.

=============================================================================
"""

import re
import logging
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


LINE_LIMIT = 1024

CONTENT_LENGTH_LABEL = "CONTENT-LENGTH:"

# "Content-Length: " is 16 characters; everything after it is the value.
CONTENT_LENGTH_VALUE_OFFSET = 16

_DIGITS = re.compile(r"[0-9]+")

# Largest body length accepted; the value must fit a signed 32-bit integer
MAX_CONTENT_LENGTH = 2**31 - 1


def read_line(stream: BinaryIO, max_len: int = LINE_LIMIT) -> bytes:
    """
    Read a single line from a buffered binary stream.

    Args:
        stream: Buffered reader supporting read() and peek().
        max_len: Maximum number of content bytes to accumulate.

    Returns:
        The line without its terminator. Empty bytes for a blank line or
        end of stream.

    Raises:
        OSError: If the underlying socket read fails.
    """
    line = bytearray()

    while len(line) < max_len:
        byte = stream.read(1)
        if not byte:
            break  # Peer closed the stream

        if byte == b"\n":
            break

        if byte == b"\r":
            # Swallow the LF of a CRLF pair, but only if it is really there
            if stream.peek(1)[:1] == b"\n":
                stream.read(1)
            break

        line += byte

    return bytes(line)


def discard_headers(stream: BinaryIO, max_len: int = LINE_LIMIT) -> None:
    """Read and throw away header lines up to and including the blank line."""
    while read_line(stream, max_len):
        pass


def read_content_length(stream: BinaryIO, max_len: int = LINE_LIMIT) -> Optional[int]:
    """
    Find the Content-Length of a request by scanning its header lines.

    Header lines are uppercased and searched for "CONTENT-LENGTH:". The first
    16 characters of the matching line are taken to be the label and the rest
    must be a plain run of ASCII digits.

    Once a matching line is found, the remaining headers are drained so the
    stream is positioned at the start of the body. When no line matches, the
    scan itself has consumed every header up to the blank line.

    Returns:
        The declared body length, or None if the header is absent, its
        value does not parse, or it exceeds MAX_CONTENT_LENGTH.
    """
    while True:
        line = read_line(stream, max_len)
        if not line:
            return None

        header = line.decode("iso-8859-1").upper()
        if CONTENT_LENGTH_LABEL in header:
            break

    discard_headers(stream, max_len)

    value = header[CONTENT_LENGTH_VALUE_OFFSET:]
    if not _DIGITS.fullmatch(value):
        logger.debug(f"Unparseable Content-Length header: {header!r}")
        return None

    length = int(value)
    if length > MAX_CONTENT_LENGTH:
        logger.debug(f"Content-Length out of range: {length}")
        return None

    return length
