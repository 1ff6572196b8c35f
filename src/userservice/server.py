"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the transport, the protocol layer and the application together.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPServer                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer.accept ──► _handle_connection ──► ThreadPool.submit   │
    │                                                        │             │
    │                                                        ▼             │
    │   _process_connection (worker thread), once per request:             │
    │                                                                      │
    │       Connection.read_request()    None → close                      │
    │              │                     TimeoutError → 408, close         │
    │              │                     RequestTooLargeError → 413, close │
    │              ▼                                                       │
    │       RequestParser.parse()        HTTPParseError → its status, close│
    │              │                                                       │
    │              ▼                                                       │
    │       middleware ──► Router.handle ──► handler                       │
    │              │                     exception → 500, logged           │
    │              ▼                                                       │
    │       Connection / Keep-Alive headers ──► send                       │
    │              │                                                       │
    │              └── keep-alive? loop : close                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every error produced here is plain text, like the handlers' own errors.

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool, RequestTooLargeError
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
    Router,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SHUTDOWN_DRAIN_TIMEOUT = 30.0


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080))
        server.use(LoggingMiddleware())

        @server.get("/list")
        def list_users(request):
            return ok([])

        server.run()            # blocks; Ctrl+C or shutdown() stops it

    create_app() in userservice.app builds the fully wired user service.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Raises:
            ValueError: ``config`` fails validation.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    # =========================================================================
    # APPLICATION SETUP
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def thread_pool(self) -> ThreadPool:
        return self._thread_pool

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    def put(self, path: str, **kwargs):
        return self._router.put(path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self._router.delete(path, **kwargs)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """Actual listening (host, port) once started, else None."""
        return self._socket_server.bound_address

    def wait_until_started(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_started(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until shutdown() or SIGINT/SIGTERM.

        Args:
            host: Override config.host.
            port: Override config.port (0 picks a free port).

        Raises:
            OSError: The listening socket could not be bound.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._handler = self._middleware.wrap(self._router.handle)

        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        logger.info(f"Routes:\n{self._router.describe()}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop()

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = self.config.log_level_number
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        logging.getLogger("userservice").setLevel(level)

    def _stop(self):
        logger.info("Shutting down server...")
        self._running = False
        logger.debug(f"Thread pool stats: {self._thread_pool.stats}")
        self._thread_pool.shutdown(wait=True, timeout=SHUTDOWN_DRAIN_TIMEOUT)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread: hand the connection to a worker."""
        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """Serve every request on ``conn`` until it closes (worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLargeError as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Parse error ({int(e.status_code)}): {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self._dispatch(conn, request)

                keep_alive = self.config.keep_alive and request.is_keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    break

                if not keep_alive or response.headers.get("Connection") == "close":
                    break

                conn.set_keep_alive()

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        """Run the middleware chain; any exception becomes a 500."""
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error in {request.method} {request.path}: {e}")
            return (ResponseBuilder()
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .text(HTTPStatus.INTERNAL_SERVER_ERROR.phrase)
                .build())

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer a request that never reached the router, then close."""
        response = (ResponseBuilder()
            .status(status)
            .text(message)
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))
