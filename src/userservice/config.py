"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the service in one dataclass. Values come from, in order
of precedence:

    command line (__main__)  ──►  environment (from_env)  ──►  defaults

    USERSERVICE_PORT=9000 USERSERVICE_LOG_LEVEL=DEBUG python -m userservice

validate() is called by HTTPServer before anything binds, so a bad value
stops the process at startup instead of at the first request.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from . import __version__


ENV_PREFIX = "USERSERVICE_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the user service.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   min_workers, max_workers
    LOGGING     log_level, log_format
    IDENTITY    server_name

    =========================================================================
    """

    # -------------------------------------------------------------------------
    # NETWORK
    # -------------------------------------------------------------------------

    host: str = "0.0.0.0"
    """Bind address. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Bind port. 0 asks the OS for a free one (see SocketServer.bound_address)."""

    backlog: int = 128
    """Pending connections the kernel queues before refusing new ones."""

    buffer_size: int = 8192
    """Bytes requested per recv()."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request on a connection, in seconds."""

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    keep_alive: bool = True
    """Serve more than one request per connection when the client asks."""

    keep_alive_timeout: float = 5.0
    """Idle time allowed between requests on a kept-alive connection."""

    max_request_size: int = 1024 * 1024
    """Largest accepted request (headers + body). Bigger ones get 413."""

    # -------------------------------------------------------------------------
    # THREADING
    # -------------------------------------------------------------------------

    min_workers: int = 4
    max_workers: int = 32

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------

    log_level: str = "INFO"
    """Level of the "userservice" logger hierarchy."""

    log_format: str = "text"
    """Access log line format: "text" (Apache-like) or "json"."""

    # -------------------------------------------------------------------------
    # IDENTITY
    # -------------------------------------------------------------------------

    server_name: str = f"userservice/{__version__}"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        USERSERVICE_HOST        Bind address      (default: 0.0.0.0)
        USERSERVICE_PORT        Bind port         (default: 8080)
        USERSERVICE_WORKERS     Min workers; max is twice this (default: 4/32)
        USERSERVICE_TIMEOUT     First-request timeout in seconds (default: 30)
        USERSERVICE_LOG_LEVEL   Log level         (default: INFO)
        USERSERVICE_LOG_FORMAT  text or json      (default: text)

        =====================================================================

        Raises:
            ValueError: A numeric variable does not parse.
        """
        defaults = cls()

        workers = _env("WORKERS")
        if workers is not None:
            min_workers = int(workers)
            max_workers = min_workers * 2
        else:
            min_workers = defaults.min_workers
            max_workers = defaults.max_workers

        return cls(
            host=_env("HOST", defaults.host),
            port=int(_env("PORT", str(defaults.port))),
            min_workers=min_workers,
            max_workers=max_workers,
            timeout=float(_env("TIMEOUT", str(defaults.timeout))),
            log_level=_env("LOG_LEVEL", defaults.log_level).upper(),
            log_format=_env("LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Check every value, failing fast on the first bad one.

        Raises:
            ValueError: With a message naming the offending field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level!r}. Must be one of {LOG_LEVELS}.")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format!r}. Must be one of {LOG_FORMATS}.")

    @property
    def log_level_number(self) -> int:
        """log_level as a logging module constant, e.g. logging.INFO."""
        return getattr(logging, self.log_level.upper())


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)
