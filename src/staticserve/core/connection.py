"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the three operations
the request handler needs: read one request, write one response, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client types:   GET /index.html HTTP/1.1⏎

    Server might receive ANY of these:
        recv() → "GET /index.html HTTP/1.1\n"     (all at once)
        recv() → "GET /ind"                       (partial)
        recv() → "ex.html HTTP/1.1\n"             (the rest)

So we have to decide when we have "enough". We read fixed 80-byte
chunks and stop as soon as ONE of these happens:

    ┌─────────────────────────────────────────────────────────────────┐
    │                 END-OF-REQUEST CONDITIONS                        │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   1. A newline arrived       → the request line is complete     │
    │   2. recv() returned b""     → client closed its side (EOF)     │
    │   3. max_request_size hit    → RequestTooLargeError             │
    │   4. socket timeout          → RequestTimeoutError              │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

A short read (fewer than 80 bytes) is NOT treated as the end. TCP is
free to hand us "GET /ind" and then the rest, and guessing from chunk
sizes would parse half a path.

=============================================================================
PARTIAL WRITES
=============================================================================

send() may accept fewer bytes than we hand it when the kernel buffer is
full. send_all() keeps going from where the last call stopped:

    data:  [██████████████████████████████]   30 bytes
    send → 12   [████████████░░░░░░░░░░░░░░░░░░]
    send → 10   [██████████████████████░░░░░░░░]
    send →  8   [██████████████████████████████]   done

A send() that returns 0 (or raises) means the transport is gone.
We raise SendError instead of spinning on it.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..errors import (
    RequestTooLargeError,
    RequestTimeoutError,
    ReceiveError,
    SendError,
)


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Per-connection lifecycle.

        ACCEPTED → READING → PARSED → SERVING_FOUND     ─┐
                                    → SERVING_NOT_FOUND ─┼→ CLOSED
                                    → REJECTED_METHOD   ─┘

    Any failure jumps straight to CLOSED. There is no way back.
    """
    ACCEPTED = "accepted"
    READING = "reading"
    PARSED = "parsed"
    SERVING_FOUND = "serving_found"
    SERVING_NOT_FOUND = "serving_not_found"
    REJECTED_METHOD = "rejected_method"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client.

    Owned by exactly one request handler for its whole life, and always
    closed when that handler is done, whatever happened:

        with conn:
            raw = conn.read_request()
            ...
            conn.send_all(response.to_bytes())
        # closed here, even on exceptions

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current ConnectionState.
        created_at: Timestamp when the connection was accepted.
        bytes_received: Total bytes read.
        bytes_sent: Total bytes written.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    chunk_size: int = 80
    timeout: Optional[float] = 30.0
    max_request_size: int = 8192

    def __post_init__(self):
        # Accepted sockets can inherit the listener's accept timeout.
        # Reset to plain blocking, then apply our own timeout.
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> bytes:
        """
        Read one request from the socket.

        A request line with no trailing newline is only served once the
        client closes its sending side. If the client keeps the connection
        open, the read ends in RequestTimeoutError and nothing is sent.

        Returns:
            The accumulated bytes (possibly b"" if the client sent nothing
            and closed). May contain bytes past the first newline when they
            arrived in the same chunk; the parser ignores them.

        Raises:
            RequestTooLargeError: No newline within max_request_size bytes.
            RequestTimeoutError: Client went silent for `timeout` seconds.
            ReceiveError: recv() failed for any other reason.
        """
        self.state = ConnectionState.READING
        buffer = b""

        try:
            while True:
                chunk = self._recv()
                if not chunk:
                    break  # EOF

                buffer += chunk

                if b"\n" in chunk:
                    break  # Request line complete

                if len(buffer) >= self.max_request_size:
                    raise RequestTooLargeError(len(buffer), self.max_request_size)

        except socket.timeout:
            raise RequestTimeoutError(
                f"No complete request after {self.timeout}s "
                f"({len(buffer)} bytes received)"
            )
        except OSError as e:
            raise ReceiveError(
                f"Receive failed after {len(buffer)} bytes: {e}"
            ) from e

        return buffer

    def _recv(self) -> bytes:
        """
        Receive one chunk.

        A reset or broken connection reads as EOF; whatever arrived
        before it is still served.
        """
        try:
            data = self.socket.recv(self.chunk_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_received += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_all(self, data: bytes) -> int:
        """
        Write every byte of `data`, tolerating partial writes.

        Returns:
            Number of bytes sent (always len(data)).

        Raises:
            SendError: send() failed or stopped accepting bytes.
        """
        total = len(data)
        sent = 0
        view = memoryview(data)

        while sent < total:
            try:
                n = self.socket.send(view[sent:])
            except OSError as e:
                raise SendError(
                    f"Send failed after {sent}/{total} bytes: {e}", sent, total
                ) from e

            if n <= 0:
                raise SendError(
                    f"Transport accepted no bytes after {sent}/{total}", sent, total
                )

            sent += n
            self.bytes_sent += n

        return sent

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        1. shutdown(SHUT_WR): send FIN, the client sees end of body
        2. drain: read whatever the client still has in flight
           (browser headers after the request line). Closing with unread
           data makes the kernel send RST, which can destroy the response
           before the client reads it.
        3. close(): release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self.socket.settimeout(0.5)
            drained = 0
            while drained < self.max_request_size:
                data = self.socket.recv(1024)
                if not data:
                    break
                drained += len(data)
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed "
            f"(in={self.bytes_received}B out={self.bytes_sent}B "
            f"age={time.time() - self.created_at:.3f}s)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
