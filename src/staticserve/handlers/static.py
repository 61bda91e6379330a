"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps a ParsedRequest to a Response by reading a file from disk.

=============================================================================
DISPATCH
=============================================================================

    method == "GET" ?
        │
        ├── no  → log "405 Method Not Allowed", return None
        │         (the caller writes NOTHING and closes the connection)
        │
        └── yes → sanitize path → confine to root → open(path, "rb")
                     │
                     ├── opened   → 200 + file bytes
                     └── anything else (missing, directory, no permission,
                         outside root) → the fixed 404

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

Two layers:

    1. SANITIZE  Strip every leading "." and "/" then prefix "./"

                 "../../etc/passwd"   → "./etc/passwd"
                 "/index.html"        → "./index.html"
                 "foo/bar.html"       → "./foo/bar.html"

       This alone is NOT enough: "docs/../../etc/passwd" starts with
       "d", so nothing is stripped, and ".." later in the path still
       climbs out.

    2. CONFINE   Join with root_dir, resolve() (collapses "..", follows
                 symlinks), and require the result to stay under root_dir:

                 full_path = (root_dir / sanitized).resolve()
                 full_path.relative_to(root_dir)   # ValueError if outside

       An escaping path gets the same 404 as a missing file, so probing
       cannot tell "exists outside root" from "does not exist".

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.request import ParsedRequest
from ..http.response import Response, ok, not_found


logger = logging.getLogger(__name__)


SUPPORTED_METHOD = "GET"


def sanitize_path(path: str) -> str:
    """
    Strip leading "." and "/" characters and anchor at "./".

    Stops at the first character that is neither, so only the front of
    the path is touched.
    """
    return "./" + path.lstrip("./")


class StaticFileHandler:
    """
    Serves files from a root directory.

    Usage:
        handler = StaticFileHandler("/var/www")
        response = handler.handle(parse_request(b"GET /index.html HTTP/1.1\\n"))
        if response is None:
            ...  # unsupported method: send nothing
    """

    def __init__(self, root_dir: str = "."):
        """
        Args:
            root_dir: Directory to serve from. Resolved once, up front,
                      so later confinement checks compare absolute paths.

        Raises:
            ValueError: root_dir is not a directory.
        """
        self.root_dir = Path(root_dir).resolve()

        if not self.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def handle(self, request: ParsedRequest) -> Optional[Response]:
        """
        Build the response for a request.

        Returns:
            The Response to send, or None when the method is not GET.
        """
        if request.method != SUPPORTED_METHOD:
            logger.warning(
                f"405 Method Not Allowed! Stopping the request! "
                f"(method={request.method!r} path={request.path!r})"
            )
            return None

        full_path = self.resolve(request.path)
        body = self.read_file(full_path) if full_path is not None else None

        if body is None:
            logger.debug(f"404 {request.path!r}")
            return not_found(request.version)

        logger.debug(f"200 {request.path!r} ({len(body)} bytes)")
        return ok(request.version, body)

    def resolve(self, path: str) -> Optional[Path]:
        """
        Turn a request path into an absolute filesystem path under root.

        Returns:
            The resolved path, or None if it would escape root_dir or
            cannot be resolved at all.
        """
        sanitized = sanitize_path(path)

        try:
            full_path = (self.root_dir / sanitized).resolve()
            full_path.relative_to(self.root_dir)
        except ValueError:
            # Either outside root, or an embedded NUL byte that the OS
            # cannot represent in a path.
            logger.warning(f"Path traversal attempt blocked: {path!r}")
            return None
        except (RuntimeError, OSError) as e:
            # Symlink loops raise RuntimeError before Python 3.13.
            logger.warning(f"Cannot resolve {path!r}: {e}")
            return None

        return full_path

    def read_file(self, path: Path) -> Optional[bytes]:
        """
        Read a file's raw bytes.

        Returns:
            The file contents, or None if it cannot be opened as a file
            (missing, a directory, permission denied, a NUL in the name).
        """
        try:
            with open(path, "rb") as f:
                return f.read()
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot read {path}: {e}")
            return None
