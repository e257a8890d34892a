"""
Unit tests for the static, CGI and error handlers.

Each test drives a handler over one end of a socketpair and reads the
response from the other end.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Tuple

import pytest

from tinyweb.core import Connection
from tinyweb.handlers import (
    CGIHandler,
    ErrorResponder,
    ResolvedTarget,
    StaticFileHandler,
    cgi_environment,
    is_executable,
)
from tinyweb.http import HTTPStatus, ParsedRequest, response_head

from conftest import ERROR_PAGES, PAGE_HTML, SERVER_NAME, read_all


Pair = Tuple[Connection, socket.socket]


def finish(conn: Connection, client: socket.socket) -> bytes:
    """Close the server side and collect everything the client received."""
    conn.close()
    return read_all(client)


def ok_head(content_type: bool = True) -> bytes:
    return response_head(HTTPStatus.OK, SERVER_NAME, "text/html" if content_type else None)


def error_response(code: int) -> bytes:
    return response_head(HTTPStatus(code), SERVER_NAME) + ERROR_PAGES[code]


def target(docroot: Path, path: str) -> ResolvedTarget:
    full = str(docroot / path)
    return ResolvedTarget(filesystem_path=full, is_executable=is_executable(full))


@pytest.fixture
def errors(docroot: Path) -> ErrorResponder:
    return ErrorResponder(str(docroot), SERVER_NAME)


@pytest.fixture
def cgi(errors: ErrorResponder) -> CGIHandler:
    return CGIHandler(errors, SERVER_NAME)


class TestResponseHead:
    """Tests for response_head()."""

    def test_with_content_type(self):
        assert response_head(HTTPStatus.OK, "tinyweb/0.1.0") == (
            b"HTTP/1.1 200 OK\r\n"
            b"Server: tinyweb/0.1.0\r\n"
            b"Content-Type: text/html\r\n"
            b"\r\n"
        )

    def test_without_content_type(self):
        """CGI output supplies its own headers and blank line."""
        assert response_head(HTTPStatus.OK, "tinyweb/0.1.0", content_type=None) == (
            b"HTTP/1.1 200 OK\r\n"
            b"Server: tinyweb/0.1.0\r\n"
        )


class TestStaticFileHandler:
    """Tests for StaticFileHandler."""

    def test_serves_file_verbatim(self, conn_pair: Pair, docroot: Path):
        conn, client = conn_pair

        size = StaticFileHandler(SERVER_NAME).serve(conn, target(docroot, "page.html"))

        assert size == len(PAGE_HTML)
        assert finish(conn, client) == ok_head() + PAGE_HTML

    def test_file_larger_than_chunk(self, conn_pair: Pair, tmp_path: Path):
        conn, client = conn_pair
        data = bytes(range(256)) * 40  # 10 KB, binary
        (tmp_path / "big.bin").write_bytes(data)

        StaticFileHandler(SERVER_NAME, chunk_size=1024).serve(conn, target(tmp_path, "big.bin"))

        assert finish(conn, client) == ok_head() + data

    def test_empty_file(self, conn_pair: Pair, tmp_path: Path):
        conn, client = conn_pair
        (tmp_path / "empty.html").write_bytes(b"")

        StaticFileHandler(SERVER_NAME).serve(conn, target(tmp_path, "empty.html"))

        assert finish(conn, client) == ok_head()


class TestErrorResponder:
    """Tests for ErrorResponder."""

    @pytest.mark.parametrize("method, code", [
        ("bad_request", 400),
        ("not_found", 404),
        ("cannot_execute", 500),
        ("unimplemented", 501),
    ])
    def test_error_pages(self, conn_pair: Pair, errors: ErrorResponder, method: str, code: int):
        conn, client = conn_pair

        getattr(errors, method)(conn)

        assert finish(conn, client) == error_response(code)

    def test_page_path(self, errors: ErrorResponder, docroot: Path):
        assert errors.page_path(HTTPStatus.NOT_FOUND) == os.path.join(str(docroot), "404.html")

    def test_missing_page_sends_nothing(self, conn_pair: Pair, tmp_path: Path):
        conn, client = conn_pair
        responder = ErrorResponder(str(tmp_path), SERVER_NAME)

        with pytest.raises(FileNotFoundError):
            responder.not_found(conn)

        assert finish(conn, client) == b""


class TestCGIEnvironment:
    """Tests for cgi_environment()."""

    def test_inherited_cgi_variables_are_dropped(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QUERY_STRING", "stale")
        monkeypatch.setenv("CONTENT_LENGTH", "99")

        env = cgi_environment("POST", CONTENT_LENGTH="5")

        assert env["REQUEST_METHOD"] == "POST"
        assert env["CONTENT_LENGTH"] == "5"
        assert "QUERY_STRING" not in env
        assert env["PATH"] == os.environ["PATH"]


class TestCGIHandler:
    """Tests for CGIHandler.execute()."""

    def test_get_passes_query_string(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        conn, client = conn_pair
        client.sendall(b"Host: x\r\n\r\n")
        request = ParsedRequest("GET", "/cgi-bin/env.sh", "a=1&b=2", "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/env.sh"), request)

        assert finish(conn, client) == ok_head(content_type=False) + (
            b"Content-Type: text/plain\n"
            b"\n"
            b"method=GET\n"
            b"query=a=1&b=2\n"
            b"length=\n"
        )

    def test_get_without_query(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        conn, client = conn_pair
        client.sendall(b"\r\n")
        request = ParsedRequest("GET", "/cgi-bin/env.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/env.sh"), request)

        assert b"method=GET\nquery=\n" in finish(conn, client)

    def test_post_feeds_body_to_stdin(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        conn, client = conn_pair
        client.sendall(b"Host: x\r\nContent-Length: 11\r\n\r\nhello world")
        request = ParsedRequest("POST", "/cgi-bin/echo.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/echo.sh"), request)

        assert finish(conn, client) == ok_head(content_type=False) + (
            b"Content-Type: text/plain\n"
            b"\n"
            b"length=11\n"
            b"hello world"
        )

    def test_post_large_body(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        """A body bigger than the pipe buffers goes through intact."""
        conn, client = conn_pair
        body = os.urandom(300 * 1024)
        data = f"Content-Length: {len(body)}\r\n\r\n".encode() + body
        sender = threading.Thread(target=client.sendall, args=(data,), daemon=True)
        sender.start()

        # The echoed output is too big to sit unread in the socket buffer
        received = []
        receiver = threading.Thread(target=lambda: received.append(read_all(client)), daemon=True)
        receiver.start()
        request = ParsedRequest("POST", "/cgi-bin/echo.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/echo.sh"), request)
        sender.join(timeout=5.0)
        conn.close()
        receiver.join(timeout=5.0)

        assert len(received) == 1
        response = received[0]
        assert response.endswith(body)
        assert f"length={len(body)}\n".encode() in response

    def test_post_program_ignoring_input(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        """A program that exits without reading its body still answers 200."""
        conn, client = conn_pair
        body = b"x" * (256 * 1024)
        data = f"Content-Length: {len(body)}\r\n\r\n".encode() + body
        sender = threading.Thread(target=client.sendall, args=(data,), daemon=True)
        sender.start()
        request = ParsedRequest("POST", "/cgi-bin/early.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/early.sh"), request)
        sender.join(timeout=5.0)

        assert finish(conn, client) == ok_head(content_type=False) + (
            b"Content-Type: text/plain\n\ndone early\n"
        )

    @pytest.mark.parametrize("headers", [
        b"Host: x\r\n\r\n",
        b"Content-Length: abc\r\n\r\n",
        b"Content-Length: -1\r\n\r\n",
    ])
    def test_post_without_valid_length(
        self, conn_pair: Pair, cgi: CGIHandler, tmp_path: Path, docroot: Path, headers: bytes
    ):
        """400, and the program is never started."""
        conn, client = conn_pair
        marker = tmp_path / "ran"
        script = tmp_path / "marker.sh"
        script.write_text(f"#!/bin/sh\ntouch {marker}\n")
        os.chmod(script, 0o755)
        client.sendall(headers)
        request = ParsedRequest("POST", "/marker.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(tmp_path, "marker.sh"), request)

        assert finish(conn, client) == error_response(400)
        assert not marker.exists()

    def test_nonzero_exit_is_500(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        conn, client = conn_pair
        client.sendall(b"\r\n")
        request = ParsedRequest("GET", "/cgi-bin/fail.sh", None, "HTTP/1.1")

        cgi.execute(conn, target(docroot, "cgi-bin/fail.sh"), request)

        assert finish(conn, client) == error_response(500)

    def test_non_executable_file_is_500(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        """A plain file reached through the CGI branch cannot be spawned."""
        conn, client = conn_pair
        client.sendall(b"\r\n")
        request = ParsedRequest("GET", "/page.html", "x=1", "HTTP/1.1")

        cgi.execute(conn, target(docroot, "page.html"), request)

        assert finish(conn, client) == error_response(500)

    def test_truncated_post_body(self, conn_pair: Pair, cgi: CGIHandler, docroot: Path):
        """The client hanging up mid-body is a transport error."""
        conn, client = conn_pair
        client.sendall(b"Content-Length: 100\r\n\r\nshort")
        client.shutdown(socket.SHUT_WR)
        request = ParsedRequest("POST", "/cgi-bin/echo.sh", None, "HTTP/1.1")

        with pytest.raises(ConnectionError):
            cgi.execute(conn, target(docroot, "cgi-bin/echo.sh"), request)

        assert finish(conn, client) == b""
