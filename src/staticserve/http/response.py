"""
=============================================================================
RESPONSE BUILDING
=============================================================================

There are exactly two responses this server can produce.

    FOUND
    ┌─────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\n                     ← status line, bare \n   │
    │  Content-Type: text/html\r\n           ← the only header        │
    │  \r\n                                  ← end of headers         │
    │  <the file's bytes, untouched>                                   │
    └─────────────────────────────────────────────────────────────────┘

    NOT FOUND
    ┌─────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 404 NOT FOUND\r\n                                      │
    │  \r\n                                  ← no headers at all      │
    │  <b>404 Error - resource not found on this server</b>           │
    └─────────────────────────────────────────────────────────────────┘

The version is whatever the client sent; we echo it back. Browsers are
lenient enough to render both, and telnet users see plain text.

There is no Content-Length: the end of the body is the end of the
connection, since every connection carries exactly one response.

=============================================================================
"""

from dataclasses import dataclass


CONTENT_TYPE_HEADER = "Content-Type: text/html\r\n"
HEADER_TERMINATOR = "\r\n"

NOT_FOUND_BODY = b"<b>404 Error - resource not found on this server</b>"

# Used when the client omitted the version token entirely.
DEFAULT_VERSION = "HTTP/1.0"


@dataclass
class Response:
    """
    A response ready to be written to a connection.

    Attributes:
        status: Numeric status, for logging.
        status_line: Status line including its own line terminator.
        headers: Header block including the blank-line terminator.
        body: Raw body bytes.
    """

    status: int
    status_line: str
    headers: str = HEADER_TERMINATOR
    body: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialize to the exact bytes sent on the wire."""
        head = (self.status_line + self.headers).encode("utf-8")
        return head + self.body


def ok(version: str, body: bytes) -> Response:
    """200 response carrying a file's contents."""
    return Response(
        status=200,
        status_line=f"{version or DEFAULT_VERSION} 200 OK\n",
        headers=CONTENT_TYPE_HEADER + HEADER_TERMINATOR,
        body=body,
    )


def not_found(version: str) -> Response:
    """The fixed 404 response. Never mentions the requested path."""
    return Response(
        status=404,
        status_line=f"{version or DEFAULT_VERSION} 404 NOT FOUND\r\n",
        headers=HEADER_TERMINATOR,
        body=NOT_FOUND_BODY,
    )
