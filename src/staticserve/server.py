"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Ties the listener, the thread pool and the file handler together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                      ┌──────────────────┐                            │
    │                      │ StaticFileServer │                            │
    │                      └────────┬─────────┘                            │
    │            ┌──────────────────┼──────────────────┐                   │
    │            ▼                  ▼                  ▼                   │
    │    ┌──────────────┐   ┌──────────────┐   ┌──────────────────┐       │
    │    │ SocketServer │   │  ThreadPool  │   │StaticFileHandler │       │
    │    │  (Listener)  │   │ (Concurrency)│   │   (Dispatch)     │       │
    │    └──────┬───────┘   └──────┬───────┘   └──────────────────┘       │
    │           │ Connection       │ runs handle_connection()              │
    │           └─────────────────►┘                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION, START TO FINISH
=============================================================================

    ACCEPTED   SocketServer.accept() wrapped the socket
       │
    READING    conn.read_request()          → raw bytes
       │
    PARSED     RequestParser.parse()        → ParsedRequest
       │
       ├── SERVING_FOUND       200 + file bytes ─┐
       ├── SERVING_NOT_FOUND   fixed 404 ────────┤ conn.send_all()
       └── REJECTED_METHOD     nothing sent      │
                                                 ▼
    CLOSED     "Connection from <ip>" logged, socket closed. Always.

A failure anywhere (timeout, oversized request, dead client) ends that
one connection. The listener never notices.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .errors import RequestError
from .handlers import StaticFileHandler
from .http import RequestParser


logger = logging.getLogger(__name__)


class StaticFileServer:
    """
    Serves files from a directory, one response per connection.

    Usage:
        server = StaticFileServer(ServerConfig(port=8080, root_dir="./public"))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.

        Raises:
            ValueError: The configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser()
        self._handler = StaticFileHandler(self.config.root_dir)

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) actually listened on."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Raises:
            ServerStartupError: socket(), bind() or listen() failed.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving {self._handler.root_dir} on "
            f"{self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = self.config.log_level_number

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("staticserve").setLevel(level)

    def _shutdown(self):
        """Drain in-flight connections, then stop the workers."""
        logger.info(f"Shutting down server... {self._thread_pool.stats}")
        timeout = self.config.timeout or 30.0
        self._thread_pool.shutdown(wait=True, timeout=timeout)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Called by the listener for every accepted connection.

        Blocks while the pool's queue is full, so excess clients wait in
        the kernel backlog instead of being dropped.
        """
        try:
            self._thread_pool.submit(self.handle_connection, args=(conn,))
        except RuntimeError as e:
            # Pool is shutting down
            logger.warning(f"[{conn.id}] Not accepted: {e}")
            conn.close()

    def handle_connection(self, conn: Connection):
        """
        Serve exactly one request on `conn`, then close it.

        Runs on a worker thread. The connection is closed on every path,
        including unsupported methods and transport errors.
        """
        with conn:
            try:
                raw_request = conn.read_request()
                request = self._parser.parse(raw_request, conn.address)
                conn.state = ConnectionState.PARSED

                response = self._handler.handle(request)

                if response is None:
                    conn.state = ConnectionState.REJECTED_METHOD
                else:
                    if response.status == 200:
                        conn.state = ConnectionState.SERVING_FOUND
                    else:
                        conn.state = ConnectionState.SERVING_NOT_FOUND
                    conn.send_all(response.to_bytes())

            except RequestError as e:
                logger.warning(f"[{conn.id}] {type(e).__name__}: {e}")

            finally:
                logger.info(f"Connection from {conn.client_ip}")
