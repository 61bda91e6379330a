"""
=============================================================================
REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into a ParsedRequest.

=============================================================================
THE WHOLE PROTOCOL
=============================================================================

The server only understands the request line:

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /index.html HTTP/1.1\n                                     │
    │  └─┘ └─────────┘ └──────┘                                       │
    │  Method  Path    Version                                         │
    └─────────────────────────────────────────────────────────────────┘

That is exactly what you get by typing into `telnet host port`.
A browser sends headers after that line; they are ignored.

PARSING RULES:
──────────────

1. Trim exactly ONE trailing line terminator (\r\n or \n), if present.
2. Split on whitespace (any run of spaces, tabs, newlines).
3. The first three tokens are method, path and version.
   Extra tokens are ignored. Missing tokens become "".

Nothing is rejected at this stage. A request with only "GET" parses
into method="GET", path="", version="" and it is up to the dispatcher
to decide what that means.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Tuple


def strip_line_terminator(text: str) -> str:
    """
    Remove a single trailing line terminator.

    "GET / HTTP/1.0\\r\\n"  → "GET / HTTP/1.0"
    "GET / HTTP/1.0\\n"     → "GET / HTTP/1.0"
    "GET / HTTP/1.0\\n\\n"  → "GET / HTTP/1.0\\n"   (only one)
    "GET / HTTP/1.0"       → unchanged
    """
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


@dataclass(frozen=True)
class ParsedRequest:
    """
    A parsed request line.

    Attributes:
        method: First token, e.g. "GET". Matched case-sensitively.
        path: Second token, exactly as the client sent it.
        version: Third token, echoed back in the status line.
        client_address: (ip, port) of the client, when known.
    """

    method: str = ""
    path: str = ""
    version: str = ""
    client_address: Optional[Tuple[str, int]] = None

    @property
    def is_complete(self) -> bool:
        """True when all three tokens were present."""
        return bool(self.method and self.path and self.version)


class RequestParser:
    """
    Parses raw request bytes.

    Usage:
        parser = RequestParser()
        request = parser.parse(b"GET /index.html HTTP/1.1\\n", ("10.0.0.5", 51234))
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def parse(
        self,
        raw: bytes,
        client_address: Optional[Tuple[str, int]] = None,
    ) -> ParsedRequest:
        """
        Parse raw bytes into a ParsedRequest.

        Undecodable bytes are replaced rather than rejected; a garbled
        path simply will not match any file.
        """
        text = strip_line_terminator(raw.decode(self.encoding, errors="replace"))

        # split() with no argument splits on any whitespace run and
        # drops empty strings, so "GET    /x" still gives two tokens.
        tokens = text.split()
        tokens += [""] * (3 - len(tokens))
        method, path, version = tokens[:3]

        return ParsedRequest(
            method=method,
            path=path,
            version=version,
            client_address=client_address,
        )


def parse_request(
    raw: bytes,
    client_address: Optional[Tuple[str, int]] = None,
) -> ParsedRequest:
    """Convenience function: parse with a default RequestParser."""
    return RequestParser().parse(raw, client_address)
