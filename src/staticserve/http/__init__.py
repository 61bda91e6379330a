"""
=============================================================================
PROTOCOL COMPONENTS
=============================================================================

    request.py   raw bytes  ──parse──►  ParsedRequest
    response.py  Response   ──serialize──►  raw bytes

Neither module touches a socket; both are pure functions of their input,
which keeps them trivially testable.

=============================================================================
"""

from .request import ParsedRequest, RequestParser, parse_request, strip_line_terminator
from .response import (
    Response,
    ok,
    not_found,
    NOT_FOUND_BODY,
    CONTENT_TYPE_HEADER,
    DEFAULT_VERSION,
)

__all__ = [
    "ParsedRequest",
    "RequestParser",
    "parse_request",
    "strip_line_terminator",
    "Response",
    "ok",
    "not_found",
    "NOT_FOUND_BODY",
    "CONTENT_TYPE_HEADER",
    "DEFAULT_VERSION",
]
