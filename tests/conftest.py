"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, List, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserve import StaticFileServer, ServerConfig
from staticserve.core import Connection


INDEX_HTML = b"<html><body><h1>Hello</h1></body></html>\n"
BAR_HTML = b"<p>bar</p>"
BINARY_BLOB = bytes(range(256)) * 4


class FakeSocket:
    """
    Stand-in for a connected client socket.

    recv() hands out the scripted chunks one per call, never more than the
    requested size (the rest of a long chunk waits for the next call). An
    exception in the script is raised instead, then b"" means EOF. send() records what was
    written and can be throttled to simulate partial writes.
    """

    def __init__(
        self,
        chunks: Optional[List] = None,
        max_send: Optional[int] = None,
        stall_after: Optional[int] = None,
        send_error: Optional[Exception] = None,
    ):
        self.chunks = list(chunks or [])
        self.max_send = max_send
        self.stall_after = stall_after
        self.send_error = send_error

        self.sent = bytearray()
        self.send_calls = 0
        self.recv_calls = 0
        self.recv_sizes: List[int] = []
        self.returned: List[int] = []
        self.timeout = None
        self.shut_down = False
        self.closed = False

    def setblocking(self, flag):
        pass

    def settimeout(self, value):
        self.timeout = value

    def recv(self, size: int) -> bytes:
        self.recv_calls += 1
        self.recv_sizes.append(size)
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if isinstance(chunk, BaseException):
            raise chunk
        if len(chunk) > size:
            # A real socket never returns more than asked for.
            self.chunks.insert(0, chunk[size:])
            chunk = chunk[:size]
        self.returned.append(len(chunk))
        return chunk

    def send(self, data) -> int:
        self.send_calls += 1
        if self.send_error is not None:
            raise self.send_error
        if self.stall_after is not None and len(self.sent) >= self.stall_after:
            return 0
        n = len(data) if self.max_send is None else min(self.max_send, len(data))
        self.sent += bytes(data[:n])
        return n

    def shutdown(self, how):
        self.shut_down = True

    def close(self):
        self.closed = True


@pytest.fixture
def make_connection():
    """Factory: build a Connection around a FakeSocket."""
    def _make(chunks=None, chunk_size=80, max_request_size=8192, **socket_kwargs):
        sock = FakeSocket(chunks, **socket_kwargs)
        conn = Connection(
            socket=sock,
            address=("10.1.2.3", 40000),
            chunk_size=chunk_size,
            max_request_size=max_request_size,
            timeout=5.0,
        )
        return conn, sock
    return _make


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """
    A served directory plus a secret file next to (outside) it:

        tmp_path/
        ├── secret.txt
        └── site/
            ├── index.html
            ├── blob.bin
            ├── docs/
            └── foo/bar.html
    """
    (tmp_path / "secret.txt").write_bytes(b"top secret")

    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "blob.bin").write_bytes(BINARY_BLOB)
    (root / "docs").mkdir()
    (root / "foo").mkdir()
    (root / "foo" / "bar.html").write_bytes(BAR_HTML)
    return root


@pytest.fixture
def config(site_root: Path) -> ServerConfig:
    """Test server configuration bound to an OS-picked port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root_dir=str(site_root),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs a StaticFileServer on a background thread."""

    def __init__(self, server: StaticFileServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


def fetch(port: int, payload: bytes, half_close: bool = True, timeout: float = 5.0) -> bytes:
    """Send `payload`, then read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(payload)
        if half_close:
            s.shutdown(socket.SHUT_WR)

        received = b""
        while True:
            data = s.recv(4096)
            if not data:
                return received
            received += data


@pytest.fixture(name="fetch")
def fetch_fixture():
    """The fetch() client helper."""
    return fetch


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A live server on 127.0.0.1 serving site_root."""
    server_thread = ServerThread(StaticFileServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()
