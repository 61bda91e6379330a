"""
=============================================================================
ERRORS AND EXIT CODES
=============================================================================

Everything that can go wrong falls into one of two families:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ERROR TAXONOMY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   STARTUP ERRORS (fatal)            REQUEST ERRORS (per connection) │
    │   ──────────────────────            ─────────────────────────────── │
    │                                                                      │
    │   socket()  fails → exit 2          request too large               │
    │   bind()    fails → exit 3          client too slow (timeout)       │
    │   listen()  fails → exit 4          send() refused our bytes        │
    │                                                                      │
    │   The process exits immediately.    Only that connection ends.      │
    │   No retry.                         The server keeps accepting.     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A missing file is NOT an error here: it is a normal 404 response.
An unsupported method is NOT an error either: it is logged and the
connection is closed without a reply.

=============================================================================
"""


from typing import Optional


# Process exit codes
SUCCESS = 0
USAGE_ERROR = 1
SOCK_ERROR = 2
BIND_ERROR = 3
LISTEN_ERROR = 4


class StaticServeError(Exception):
    """Base class for all staticserve errors."""


# =============================================================================
# STARTUP ERRORS
# =============================================================================

class ServerStartupError(StaticServeError):
    """
    The listener could not be brought up.

    Each subclass carries the exit code the process should terminate with,
    so the CLI can simply do ``sys.exit(e.exit_code)``.
    """

    exit_code = 1

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class SocketCreateError(ServerStartupError):
    """socket() failed."""

    exit_code = SOCK_ERROR


class BindError(ServerStartupError):
    """bind() failed: port in use, privileged, or out of range."""

    exit_code = BIND_ERROR


class ListenError(ServerStartupError):
    """listen() failed."""

    exit_code = LISTEN_ERROR


# =============================================================================
# REQUEST ERRORS
# =============================================================================

class RequestError(StaticServeError):
    """Something went wrong while serving one connection."""


class RequestTooLargeError(RequestError):
    """The client sent more than max_request_size bytes without a newline."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class RequestTimeoutError(RequestError):
    """The client stopped sending before a complete request line arrived."""


class SendError(RequestError):
    """The transport stopped accepting response bytes."""

    def __init__(self, message: str, sent: int = 0, total: int = 0):
        super().__init__(message)
        self.sent = sent
        self.total = total


class ReceiveError(RequestError):
    """recv() failed with something other than a reset or a timeout."""
