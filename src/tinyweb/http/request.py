"""
=============================================================================
REQUEST LINE PARSING
=============================================================================

Turns the raw first line of a request into a ParsedRequest.

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /cgi/search?q=hello HTTP/1.1                               │
    │  └─┘ └─────────────────┘ └──────┘                               │
    │  method      target       protocol                              │
    │                                                                  │
    │  target = /cgi/search ? q=hello                                 │
    │           └─────────┘   └─────┘                                 │
    │              path        query                                   │
    └─────────────────────────────────────────────────────────────────┘

Only GET and POST are implemented. Everything else gets a 501.

The parser is deliberately thin:
- No percent-decoding of path or query
- No validation of the protocol token
- Tokens are separated by any run of whitespace, so "GET  /  HTTP/1.1"
  parses the same as "GET / HTTP/1.1"
- Method and protocol are uppercased; the path keeps its case so that it
  still matches files on a case-sensitive filesystem

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional

from .status_codes import HTTPStatus


SUPPORTED_METHODS = ("GET", "POST")


class HTTPParseError(Exception):
    """
    Raised when the request line cannot be served.

    Attributes:
        status_code: The HTTP status the client should receive.
    """

    def __init__(self, message: str, status_code: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class ParsedRequest:
    """
    The pieces of a request line.

    Attributes:
        method: Uppercased method, "GET" or "POST".
        path: URL path with any query string removed. Never empty.
        query: Text after the first "?", or None if there was no "?".
        protocol: Uppercased protocol token, e.g. "HTTP/1.1".
    """
    method: str
    path: str
    query: Optional[str]
    protocol: str

    @property
    def has_query(self) -> bool:
        """True if the raw target contained a "?" (even with nothing after it)."""
        return self.query is not None


def parse_request_line(line: bytes) -> ParsedRequest:
    """
    Parse the first line of an HTTP request.

    Args:
        line: Raw request line without its terminator.

    Returns:
        The parsed request.

    Raises:
        HTTPParseError: 501 for methods other than GET/POST,
                        400 for an empty or malformed line.
    """
    # ISO-8859-1 maps every byte to one character, so this never fails
    tokens = line.decode("iso-8859-1").split()

    if not tokens:
        raise HTTPParseError("Empty request line")

    method = tokens[0].upper()
    if method not in SUPPORTED_METHODS:
        raise HTTPParseError(
            f"Unsupported method: {tokens[0]}",
            status_code=HTTPStatus.NOT_IMPLEMENTED,
        )

    if len(tokens) != 3:
        raise HTTPParseError(f"Malformed request line: {line!r}")

    target, protocol = tokens[1], tokens[2].upper()

    # Split at the FIRST "?" only; the query may contain more of them
    path, separator, query = target.partition("?")
    if not path:
        raise HTTPParseError(f"Empty request path: {target!r}")

    return ParsedRequest(
        method=method,
        path=path,
        query=query if separator else None,
        protocol=protocol,
    )
