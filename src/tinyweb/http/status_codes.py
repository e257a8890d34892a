"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server ever puts on the wire.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ File served, or CGI program exited with status 0          │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Malformed request line, missing/bad Content-Length (POST) │
    │  404   │ No regular file or index.html behind the URL path         │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ CGI program could not be spawned or exited non-zero       │
    │  501   │ Method other than GET or POST                             │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Being an IntEnum, members compare equal to their integer code:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'NOT FOUND'
    """

    OK = 200
    BAD_REQUEST = 400
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line."""
        return _PHRASES[self]

    @property
    def status_line(self) -> str:
        """Full status line, without the trailing CRLF."""
        return f"HTTP/1.1 {self.value} {self.phrase}"


# Reason phrases follow tinyhttpd, which this server mimics.
_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Method Not Implemented",
}
