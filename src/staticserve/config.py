"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the static file server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── staticserve 8080 --root ./public                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── STATICSERVE_ROOT=./public staticserve 8080                │
    │                                                                      │
    │   3. Defaults in ServerConfig                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE NUMBERS THAT MATTER
=============================================================================

    backlog = 25        How many not-yet-accepted clients the OS will
                        queue for us. Beyond that the kernel refuses.

    chunk_size = 80     How many bytes each recv() asks for. One
                        terminal line, which is what telnet sends.

    max_request_size    A client that never sends a newline cannot make
                        us buffer forever.

    timeout             A client that connects and goes silent cannot
                        hold a worker forever.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    REQUEST FRAMING
    - chunk_size, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers, queue_size

    CONTENT
    - root_dir

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (the default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free one,
    which is what the tests do.
    """

    backlog: int = 25
    """
    Maximum number of queued, not-yet-accepted connections.
    """

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    None = blocking (a silent client holds its worker forever).
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST FRAMING
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 80
    """
    Bytes requested per recv() call.
    """

    max_request_size: int = 8192
    """
    Upper bound on the bytes buffered while looking for the end of the
    request line.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """
    Worker threads created at startup. 1 gives strictly serial handling.
    """

    max_workers: int = 16
    """
    Upper bound the pool may scale to under load.
    """

    queue_size: int = 100
    """
    Accepted connections waiting for a worker. When full, the accept
    loop blocks and new clients wait in the OS backlog.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory files are served from. Requests can never escape it.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATICSERVE_HOST       Bind address (default: 0.0.0.0)
        STATICSERVE_PORT       Port (default: 8080)
        STATICSERVE_ROOT       Directory to serve (default: .)
        STATICSERVE_WORKERS    Max worker threads (default: 16)
        STATICSERVE_TIMEOUT    Socket timeout in seconds (default: 30)
        STATICSERVE_LOG_LEVEL  Logging level (default: INFO)

        Keyword arguments whose value is not None win over the
        environment; this is how the CLI layers its flags on top.

        =====================================================================
        """
        values = dict(
            host=os.getenv("STATICSERVE_HOST", "0.0.0.0"),
            port=int(os.getenv("STATICSERVE_PORT", "8080")),
            root_dir=os.getenv("STATICSERVE_ROOT", "."),
            max_workers=int(os.getenv("STATICSERVE_WORKERS", "16")),
            timeout=float(os.getenv("STATICSERVE_TIMEOUT", "30")),
            log_level=os.getenv("STATICSERVE_LOG_LEVEL", "INFO"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        if config.min_workers > config.max_workers:
            config.min_workers = config.max_workers
        return config

    @property
    def log_level_number(self) -> int:
        """The numeric logging level for log_level."""
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def validate(self) -> None:
        """
        Validate configuration values.

        We validate at startup, not at first use, so a typo fails the
        process immediately rather than on the first client.

        The port is deliberately not checked here: bind() is the
        authority on which ports are usable, and a bad port is reported
        as a bind failure.
        """
        if self.backlog < 0:
            raise ValueError(f"backlog must be >= 0, got {self.backlog}")

        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

        if self.max_request_size < self.chunk_size:
            raise ValueError("max_request_size must be >= chunk_size")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {self.root_dir}")
