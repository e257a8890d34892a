"""
=============================================================================
CGI EXECUTOR
=============================================================================

Runs a resolved file as a CGI program and relays its output.

=============================================================================
THE CGI CONTRACT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Server  ──►  Program                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Environment                                                        │
    │     REQUEST_METHOD   always ("GET" / "POST")                         │
    │     QUERY_STRING     GET only ("" when the URL has no "?")           │
    │     CONTENT_LENGTH   POST only, decimal                              │
    │                                                                      │
    │   stdin                                                              │
    │     GET:  /dev/null                                                  │
    │     POST: exactly CONTENT_LENGTH bytes of request body, then EOF     │
    │                                                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                        Program  ──►  Server                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   stdout   Relayed verbatim after "200 OK" + Server header. The      │
    │            program prints its own Content-Type and blank line.       │
    │   stderr   Logged when the program fails, never sent to the client   │
    │   exit     0 → 200,  anything else → 500                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
POST BODY RELAY
=============================================================================

    client socket ──read 1 KB──► worker ──write 1 KB──► program stdin
                                                              │
    program stdout ──► reader thread ──► buffer               │
    program stderr ──► reader thread ──► buffer       ◄───────┘

The output pipes are drained on their own threads while the body is being
written. A program that prints before it has read all its input would
otherwise fill the stdout pipe, block, stop reading stdin, and leave the
worker blocked on the stdin write forever.

=============================================================================
"""

import os
import logging
import subprocess
import threading
from typing import BinaryIO, Optional

from ..core.connection import Connection
from ..http.request import ParsedRequest
from ..http.response import response_head, CHUNK_SIZE
from ..http.status_codes import HTTPStatus
from .errors import ErrorResponder
from .resolver import ResolvedTarget


logger = logging.getLogger(__name__)


# Never inherited from the server's own environment
CGI_VARIABLES = ("REQUEST_METHOD", "QUERY_STRING", "CONTENT_LENGTH")


def cgi_environment(method: str, **variables: str) -> dict:
    """
    Build the environment for a CGI program.

    The server's environment is passed through (PATH, HOME, ...) minus any
    CGI variables it happens to carry, so a POST never sees a stale
    QUERY_STRING.
    """
    env = {key: value for key, value in os.environ.items() if key not in CGI_VARIABLES}
    env["REQUEST_METHOD"] = method
    env.update(variables)
    return env


class _PipeReader(threading.Thread):
    """Collects everything a child process writes to one pipe."""

    def __init__(self, pipe: BinaryIO, name: str):
        super().__init__(name=f"cgi-{name}", daemon=True)
        self.pipe = pipe
        self.data = b""
        self.start()

    def run(self):
        self.data = self.pipe.read()


class CGIHandler:
    """
    Executes CGI programs for GET and POST requests.

    Usage:
        cgi = CGIHandler(errors, server_name="tinyweb/0.1.0")
        cgi.execute(conn, target, request)
    """

    def __init__(self, errors: ErrorResponder, server_name: str, chunk_size: int = CHUNK_SIZE):
        """
        Args:
            errors: Sends the 400/500 envelopes.
            server_name: Value of the Server header.
            chunk_size: Largest body chunk read from the client and written
                        to the program in one go.
        """
        self.errors = errors
        self.server_name = server_name
        self.chunk_size = chunk_size

    def execute(self, conn: Connection, target: ResolvedTarget, request: ParsedRequest) -> None:
        """
        Run target for request and send the response.

        The request headers are still unread when this is called.

        Raises:
            OSError: On socket failures (transport errors are not mapped to
                     an HTTP status; the connection is just dropped).
        """
        path = os.path.abspath(target.filesystem_path)

        if request.method == "GET":
            conn.discard_headers()
            result = self._run_get(path, request.query or "")
        else:
            content_length = conn.read_content_length()
            if content_length is None:
                logger.warning(f"[{conn.id}] POST {request.path} without a valid Content-Length")
                self.errors.bad_request(conn)
                return
            result = self._run_post(conn, path, content_length)

        if result is None:
            self.errors.cannot_execute(conn)
            return

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(
                f"[{conn.id}] CGI {path} exited with status {result.returncode}: {stderr}"
            )
            self.errors.cannot_execute(conn)
            return

        conn.write(response_head(HTTPStatus.OK, self.server_name, content_type=None))
        conn.write(result.stdout)
        conn.flush()

    def _run_get(self, path: str, query: str) -> Optional[subprocess.CompletedProcess]:
        """
        Run the program with QUERY_STRING and no input.

        Returns:
            The finished process, or None if it could not be started.
        """
        env = cgi_environment("GET", QUERY_STRING=query)
        try:
            return subprocess.run(
                [path],
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Cannot execute {path}: {e}")
            return None

    def _run_post(
        self,
        conn: Connection,
        path: str,
        content_length: int,
    ) -> Optional[subprocess.CompletedProcess]:
        """
        Run the program, feeding it the request body on stdin.

        Returns:
            The finished process, or None if it could not be started.

        Raises:
            ConnectionError: If the client sends fewer than content_length
                             bytes. The program is killed first.
        """
        env = cgi_environment("POST", CONTENT_LENGTH=str(content_length))
        try:
            process = subprocess.Popen(
                [path],
                env=env,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Cannot execute {path}: {e}")
            return None

        with process:
            stdout = _PipeReader(process.stdout, "stdout")
            stderr = _PipeReader(process.stderr, "stderr")

            try:
                self._relay_body(conn, process.stdin, content_length)
            except BaseException:
                process.kill()
                raise
            finally:
                _close_quietly(process.stdin)
                stdout.join()
                stderr.join()

            returncode = process.wait()

        return subprocess.CompletedProcess([path], returncode, stdout.data, stderr.data)

    def _relay_body(self, conn: Connection, stdin: BinaryIO, content_length: int) -> None:
        """
        Copy exactly content_length body bytes from the client to stdin.

        If the program stops reading early, the rest of the body is still
        consumed from the client and discarded.
        """
        remaining = content_length
        stdin_open = True

        while remaining > 0:
            chunk = conn.read_exact(min(self.chunk_size, remaining))
            remaining -= len(chunk)

            if not stdin_open:
                continue

            try:
                stdin.write(chunk)
                stdin.flush()
            except BrokenPipeError:
                logger.debug(f"[{conn.id}] CGI program closed stdin with {remaining} bytes left")
                stdin_open = False


def _close_quietly(pipe: BinaryIO) -> None:
    """Close a child's stdin; a program that already exited is not an error."""
    try:
        pipe.close()
    except OSError:
        pass
