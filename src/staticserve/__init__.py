"""
=============================================================================
STATICSERVE - A Tiny TCP File Server
=============================================================================

Accepts TCP connections and answers each with one file, speaking just
enough HTTP that both a browser and a human at a telnet prompt can use it.

    $ telnet localhost 8080
    GET /index.html HTTP/1.0

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticserve PORT)
    ├── server.py            # StaticFileServer: per-connection cycle
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Exceptions and exit codes
    ├── core/
    │   ├── socket_server.py # Listener: bind, listen, accept loop
    │   ├── connection.py    # Framed reads, checked writes, close
    │   └── thread_pool.py   # Worker threads
    ├── http/
    │   ├── request.py       # Request line parsing
    │   └── response.py      # The 200 and 404 responses
    └── handlers/
        └── static.py        # GET dispatch, path sanitizing, file reads

=============================================================================
QUICK START
=============================================================================

    from staticserve import StaticFileServer, ServerConfig

    server = StaticFileServer(ServerConfig(port=8080, root_dir="./public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import StaticFileServer
from .config import ServerConfig

__all__ = ["StaticFileServer", "ServerConfig", "__version__"]
