"""
pytest configuration and fixtures.
"""

import json
import socket
import threading
from typing import Generator, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userservice import HTTPServer, ServerConfig, create_app
from userservice.http import HTTPRequest, Router
from userservice.users import UserHandlers, UserRepository


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /get?id=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a User body."""
    body = b'{"id": "1", "name": "Eve", "age": 25}'
    return (
        b"POST /create HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=8,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def repository() -> UserRepository:
    return UserRepository()


@pytest.fixture
def router(repository: UserRepository) -> Router:
    """A router with the user routes, backed by ``repository``."""
    return UserHandlers(repository).register(Router())


def make_request(
    method: str,
    path: str,
    query: Optional[dict] = None,
    body=None,
) -> HTTPRequest:
    """
    Build an HTTPRequest without going through the parser.

    ``body`` may be bytes, a str, or any JSON-encodable value.
    """
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    elif isinstance(body, str):
        raw = body.encode("utf-8")
    else:
        raw = json.dumps(body).encode("utf-8")

    return HTTPRequest(
        method=method,
        path=path,
        query_params={k: [v] for k, v in (query or {}).items()},
        body=raw,
        client_address=("127.0.0.1", 50000),
    )


class LiveServer:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.bound_address

    @property
    def port(self) -> int:
        return self.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_started(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def live_server(config: ServerConfig, repository: UserRepository) -> Generator[LiveServer, None, None]:
    """The full user service on a free port."""
    live = LiveServer(create_app(config, repository=repository))
    live.start()

    yield live

    live.stop()
