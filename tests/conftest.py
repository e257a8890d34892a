"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from typing import Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyweb import WebServer, ServerConfig
from tinyweb.core import Connection


SERVER_NAME = "tinyweb-test/1.0"

INDEX_HTML = b"<html><body>root index</body></html>\n"
PAGE_HTML = b"<html><body>a page</body></html>\n"
SUB_INDEX_HTML = b"<html><body>sub index</body></html>\n"

ERROR_PAGES = {
    400: b"<h1>400 page</h1>\n",
    404: b"<h1>404 page</h1>\n",
    500: b"<h1>500 page</h1>\n",
    501: b"<h1>501 page</h1>\n",
}

# Prints the CGI variables it was started with
ENV_SCRIPT = """#!/bin/sh
echo "Content-Type: text/plain"
echo
echo "method=$REQUEST_METHOD"
echo "query=$QUERY_STRING"
echo "length=$CONTENT_LENGTH"
"""

# Echoes its stdin back after a small head
ECHO_SCRIPT = """#!/bin/sh
echo "Content-Type: text/plain"
echo
echo "length=$CONTENT_LENGTH"
cat
"""

FAIL_SCRIPT = """#!/bin/sh
echo "partial output"
echo "something broke" >&2
exit 3
"""

# Exits without reading its input
EARLY_EXIT_SCRIPT = """#!/bin/sh
echo "Content-Type: text/plain"
echo
echo "done early"
"""

# Leaves a file behind when it runs
MARKER_NAME = "cgi-ran"


def _write_script(path: Path, text: str) -> None:
    path.write_text(text)
    os.chmod(path, 0o755)


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """A document root with pages, error pages and CGI scripts."""
    root = tmp_path / "www"
    root.mkdir()

    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "page.html").write_bytes(PAGE_HTML)
    (root / "sub").mkdir()
    (root / "sub" / "index.html").write_bytes(SUB_INDEX_HTML)
    (root / "empty").mkdir()

    for code, body in ERROR_PAGES.items():
        (root / f"{code}.html").write_bytes(body)

    cgi = root / "cgi-bin"
    cgi.mkdir()
    _write_script(cgi / "env.sh", ENV_SCRIPT)
    _write_script(cgi / "echo.sh", ECHO_SCRIPT)
    _write_script(cgi / "fail.sh", FAIL_SCRIPT)
    _write_script(cgi / "early.sh", EARLY_EXIT_SCRIPT)
    _write_script(cgi / "marker.sh", f"#!/bin/sh\ntouch {tmp_path / MARKER_NAME}\necho\n")

    # Outside the root, for traversal tests
    (tmp_path / "secret.html").write_bytes(b"secret\n")

    return root


def read_all(sock: socket.socket) -> bytes:
    """Read from sock until the peer closes it."""
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def conn_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """A server-side Connection and the client socket talking to it."""
    server_sock, client_sock = socket.socketpair()
    client_sock.settimeout(5.0)
    conn = Connection(socket=server_sock, address=("127.0.0.1", 40000), timeout=10.0)

    yield conn, client_sock

    conn.close()
    client_sock.close()


class RunningServer:
    """A WebServer running in a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread = threading.Thread(target=server.run, daemon=True)

    def start(self):
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=5.0)

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def request(self, data: bytes, half_close: bool = False) -> bytes:
        """Send raw bytes and return everything the server sends back."""
        with socket.create_connection(self.address, timeout=5.0) as sock:
            sock.sendall(data)
            if half_close:
                sock.shutdown(socket.SHUT_WR)
            return read_all(sock)


@pytest.fixture
def server_config(docroot: Path) -> ServerConfig:
    """Test configuration: ephemeral port, small pool."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        threads=4,
        document_root=str(docroot),
        server_name=SERVER_NAME,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def running_server(server_config: ServerConfig) -> Generator[RunningServer, None, None]:
    """Start a server and stop it after the test."""
    running = RunningServer(WebServer(server_config))
    running.start()

    yield running

    running.stop()
