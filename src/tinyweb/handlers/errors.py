"""
=============================================================================
ERROR RESPONDER
=============================================================================

Sends the four canonical error responses. The body of each is a fixed HTML
page on disk, named after the status code:

    ┌────────┬──────────────────────────┬────────────────────────────────┐
    │ Status │ Method                   │ Body                           │
    ├────────┼──────────────────────────┼────────────────────────────────┤
    │  400   │ bad_request()            │ <error_pages>/400.html         │
    │  404   │ not_found()              │ <error_pages>/404.html         │
    │  500   │ cannot_execute()         │ <error_pages>/500.html         │
    │  501   │ unimplemented()          │ <error_pages>/501.html         │
    └────────┴──────────────────────────┴────────────────────────────────┘

A missing page is a deployment mistake. The resulting OSError propagates
and the client gets no response at all.

=============================================================================
"""

import os
import logging

from ..core.connection import Connection
from ..http.response import response_head, write_file, CHUNK_SIZE
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ErrorResponder:
    """Writes error envelopes with their on-disk HTML bodies."""

    def __init__(self, error_pages_dir: str, server_name: str, chunk_size: int = CHUNK_SIZE):
        self.error_pages_dir = error_pages_dir
        self.server_name = server_name
        self.chunk_size = chunk_size

    def page_path(self, status: HTTPStatus) -> str:
        """Location of the asset for a status code, e.g. "assets/404.html"."""
        return os.path.join(self.error_pages_dir, f"{int(status)}.html")

    def respond(self, conn: Connection, status: HTTPStatus) -> None:
        """
        Send an error response and flush it.

        Raises:
            OSError: If the asset is missing or the socket write fails.
        """
        path = self.page_path(status)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Error page missing: {path}")

        logger.debug(f"[{conn.id}] Responding {int(status)} {status.phrase}")

        conn.write(response_head(status, self.server_name))
        write_file(conn, path, self.chunk_size)
        conn.flush()

    def bad_request(self, conn: Connection) -> None:
        self.respond(conn, HTTPStatus.BAD_REQUEST)

    def not_found(self, conn: Connection) -> None:
        self.respond(conn, HTTPStatus.NOT_FOUND)

    def cannot_execute(self, conn: Connection) -> None:
        self.respond(conn, HTTPStatus.INTERNAL_SERVER_ERROR)

    def unimplemented(self, conn: Connection) -> None:
        self.respond(conn, HTTPStatus.NOT_IMPLEMENTED)
