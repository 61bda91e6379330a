"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The transport half of the server. Nothing in here knows what a request
line or a file is.

    socket_server.py   Listener: socket → bind → listen → accept loop
    connection.py      One client: framed read, checked write, close
    thread_pool.py     Workers that serve connections concurrently

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Listener - accepts connections
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "ThreadPool",       # Manages worker threads for concurrency
]
