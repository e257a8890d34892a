"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a URL path onto a file under the document root.

=============================================================================
RESOLUTION RULES
=============================================================================

    candidate = document_root + url_path          (plain concatenation)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  URL path          Candidate                   Result               │
    ├─────────────────────────────────────────────────────────────────────┤
    │  /hello.html       assets/hello.html           file → served        │
    │  /                 assets/index.html           trailing "/" rule    │
    │  /docs             assets/docs/index.html      directory rule       │
    │  /docs/            assets/docs/index.html      trailing "/" rule    │
    │  /missing          assets/missing              → None (404)         │
    │  /../etc/passwd    (outside the root)          → None (404)         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EXECUTABLE FILES ARE CGI PROGRAMS
=============================================================================

A resolved file with ANY execute bit set (user, group or other) is run as
a CGI program instead of being sent back. The server ALSO takes the CGI
branch when the request has a query string, even for a plain file; that
rule lives in the server, since it depends on the request and not on the
file.

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


@dataclass(frozen=True)
class ResolvedTarget:
    """
    A file the request resolved to.

    Attributes:
        filesystem_path: Path of the regular file, as built from the URL.
        is_executable: Whether any execute permission bit is set.
    """
    filesystem_path: str
    is_executable: bool


def is_executable(path: str) -> bool:
    """True if path exists and has any of the u/g/o execute bits set."""
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return bool(mode & EXECUTE_BITS)


class PathResolver:
    """
    Resolves URL paths against a document root.

    Usage:
        resolver = PathResolver("assets")
        target = resolver.resolve("/")
        # ResolvedTarget(filesystem_path="assets/index.html", is_executable=False)
    """

    def __init__(self, document_root: str):
        """
        Args:
            document_root: Directory URL paths are appended to. A trailing
                           slash is dropped so "/x" never becomes "root//x".
        """
        self.document_root = document_root.rstrip("/") or "/"
        self._real_root = os.path.realpath(self.document_root)

    def resolve(self, url_path: str) -> Optional[ResolvedTarget]:
        """
        Find the file behind a URL path.

        Args:
            url_path: Path component of the request target (no query).

        Returns:
            The resolved target, or None if there is no regular file.
        """
        candidate = f"{self.document_root}{url_path}"

        if candidate.endswith("/"):
            candidate += INDEX_FILE

        if os.path.isdir(candidate):
            candidate += "/" + INDEX_FILE

        if not os.path.isfile(candidate):
            return None

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        # "/../../etc/passwd" concatenates to a path outside the root
        if not self._inside_root(candidate):
            logger.warning(f"Path traversal attempt: {url_path}")
            return None

        return ResolvedTarget(
            filesystem_path=candidate,
            is_executable=is_executable(candidate),
        )

    def _inside_root(self, path: str) -> bool:
        """Check that path, with symlinks and ".." resolved, stays under the root."""
        real_path = os.path.realpath(path)
        return os.path.commonpath([self._real_root, real_path]) == self._real_root
