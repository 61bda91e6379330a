"""
=============================================================================
LISTENER: LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket. Creates it, binds it, listens on it, and then
accepts clients forever, handing each one off as a Connection.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket          fails → SocketCreateError (2)
    2. bind()      Claim 0.0.0.0:PORT           fails → BindError         (3)
    3. listen(25)  OS starts queueing clients   fails → ListenError       (4)
    4. accept()    Block until a client arrives, get a NEW socket for it
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    └───────────┘         └───────────┘         └───────────┘

Startup failures are terminal: the accept loop is never entered and the
half-built socket is closed before the error propagates.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  Restarting the server right after stopping it works
               instead of failing while old sockets sit in TIME_WAIT.
               On Linux this still refuses a port someone is LISTENING
               on, so "port in use" is reported as a bind error.

SO_REUSEPORT:  NOT set. It would let us silently share a port that is
               already in use.

TCP_NODELAY:   Responses go out immediately instead of waiting for
               Nagle's algorithm to batch them.

=============================================================================
"""

import socket
import signal
import logging
import threading
import time
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from ..errors import SocketCreateError, BindError, ListenError
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler)                                                    │
    │        ├──► _create_socket()   socket() + setsockopt()              │
    │        ├──► _bind()            bind((host, port))                   │
    │        ├──► _listen()          listen(backlog)                      │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → shutdown()          │
    │        └──► _accept_loop()     accept() → Connection → handler      │
    │                                                                      │
    │    shutdown()        flip _running, loop exits within ~1 second     │
    │    _cleanup()        restore signals, close socket                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    # How often accept() wakes up to check for shutdown.
    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._listening_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address we are actually listening on.

        Before start() this is the configured address. After bind() it is
        what the OS gave us, so port 0 turns into the real port.
        """
        return self._bound_address or (self.config.host, self.config.port)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            logger.error(f"Could not create listening socket: {e}")
            raise SocketCreateError("Could not create listening socket", e) from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        except OSError as e:
            sock.close()
            logger.error(f"Could not configure listening socket: {e}")
            raise SocketCreateError("Could not configure listening socket", e) from e

        return sock

    def _bind(self, sock: socket.socket):
        """
        Bind to (host, port).

        OverflowError is what Python raises for a port outside 0-65535,
        so an invalid port is a bind failure like any other.
        """
        host, port = self.config.host, self.config.port
        try:
            sock.bind((host, port))
        except (OSError, OverflowError) as e:
            sock.close()
            logger.error(
                f"Binding to {host}:{port} failed - this could be caused by "
                f"an invalid port (no access, or already in use?) "
                f"or an invalid local address: {e}"
            )
            raise BindError(f"Failed to bind to {host}:{port}", e) from e

    def _listen(self, sock: socket.socket):
        try:
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Listen error: {e}")
            raise ListenError("listen() failed", e) from e

    def _setup_signals(self):
        """
        Route SIGTERM / SIGINT to shutdown().

        Python only allows installing signal handlers from the main
        thread; when embedded in a worker thread (tests), the caller is
        expected to call shutdown() itself.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bring the listener up and accept connections until shutdown().

        Args:
            connection_handler: Called once per accepted Connection. It
                                owns the connection from then on.

        Raises:
            SocketCreateError, BindError, ListenError: startup failed.
                The accept loop was never entered.
        """
        sock = self._create_socket()
        self._bind(sock)
        self._listen(sock)

        self._socket = sock
        self._bound_address = sock.getsockname()[:2]
        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._listening_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept clients one at a time and hand each one off.

        The handler decides how the connection is served (the HTTP layer
        submits it to a thread pool), so this loop only ever blocks in
        accept() or while the handler queues the connection.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Poll _running
            except OSError as e:
                if not self._running:
                    break  # Socket closed under us during shutdown
                # ECONNABORTED, EMFILE and friends: one client's problem,
                # not the listener's.
                logger.error(f"Accept error: {e}")
                time.sleep(0.1)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    chunk_size=self.config.chunk_size,
                    timeout=self.config.timeout,
                    max_request_size=self.config.max_request_size,
                )
            except OSError as e:
                logger.warning(f"Dropping connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop accepting. Idempotent, callable from any thread or a signal
        handler. The accept loop notices within ACCEPT_POLL_INTERVAL.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._listening_event.clear()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is listening.

        Returns:
            True if listening, False on timeout.
        """
        return self._listening_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown() has been called.

        Returns:
            True if shutdown was requested, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
