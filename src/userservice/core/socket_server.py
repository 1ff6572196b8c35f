"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The listening socket and its accept loop. It knows nothing about HTTP:
every accepted client socket is wrapped in a Connection and handed to a
callback (HTTPServer puts it on the thread pool).

    start(handler)
        │
        ├──► socket(AF_INET, SOCK_STREAM)
        │       SO_REUSEADDR   rebind right after a restart
        │       TCP_NODELAY    responses go out without Nagle delay
        │       settimeout(1)  accept() wakes up to see shutdown()
        │
        ├──► bind((host, port))  ── OSError is logged and re-raised
        ├──► listen(backlog)
        ├──► SIGINT / SIGTERM → shutdown()   (main thread only)
        │
        └──► while running:
                 accept() ──► Connection(...) ──► handler(conn)

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple, Dict, Any

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP server.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()

    shutdown() may be called from any thread or from a signal handler.
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        self._started_event = threading.Event()

        self._original_handlers: Dict[int, Any] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The configured (host, port)."""
        return (self.config.host, self.config.port)

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """
        The (host, port) actually bound, or None before bind.

        Differs from ``address`` when the configured port is 0.
        """
        return self._bound_address

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """
        Route SIGINT and SIGTERM to shutdown().

        signal.signal() only works in the main thread; when the server runs
        in a background thread (tests, embedding) the caller is expected
        to call shutdown() itself.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and accept until shutdown().

        Raises:
            OSError: The address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._started_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting. The accept loop exits within one poll interval."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._started_event.clear()
        logger.info("Socket server stopped")

    def wait_until_started(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._started_event.wait(timeout)
