"""
=============================================================================
CONNECTION
=============================================================================

One accepted client socket, turned from a byte stream into a sequence of
complete HTTP request messages.

TCP delivers bytes in arbitrary chunks, so a single recv() may hold half a
request line, or one request plus the start of the next. Connection keeps
a buffer across recv() calls and cuts messages out of it:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        read_request()                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _buffer: b"POST /create HTTP/1.1\r\n...\r\n\r\n{\"id\":\"1\"}GET..."│
    │             └────────── headers ────────┘    └─ body ─┘└─ next ─    │
    │                                                                      │
    │   1. recv() until "\r\n\r\n" is in the buffer                        │
    │   2. read Content-Length (or walk the chunks) from the header block  │
    │   3. recv() until the body is complete                               │
    │   4. return headers + body, keep the rest for the next call          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Keep-alive: after the first request the read timeout drops from
``timeout`` to ``keep_alive_timeout``. A client that goes quiet between
requests is not an error; read_request() just returns None.

State machine:

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──► READING ...
     │         │                          │             │
     └─────────┴──────────► CLOSING ◄─────┴─────────────┘
                               │
                               ▼
                            CLOSED

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..http.request import HTTPParseError, decode_chunked, is_chunked


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"


class RequestTooLargeError(ValueError):
    """The buffered request grew past ``max_request_size``."""


class ConnectionState(Enum):
    """Where a connection is in its request/response cycle."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port).
        id: Short random id used to tag log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.

    Usage:
        with Connection(socket=sock, address=addr) as conn:
            data = conn.read_request()
            conn.send_response(response_bytes)
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def idle_time(self) -> float:
        """Seconds since the last read or write."""
        return time.time() - self.last_activity

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request message.

        Returns:
            The request bytes (headers + body), or None when the client
            closed the connection or went idle between requests.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLargeError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_TERMINATOR not in self._buffer:
                if not self._fill_buffer():
                    return None

            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)
            head = self._buffer[:header_end]

            transfer_encoding = self._header_value(head, b"transfer-encoding")
            if transfer_encoding is not None:
                request_end = self._read_chunked(transfer_encoding, body_start)
            else:
                request_end = self._read_fixed(head, body_start)

            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout after {self.idle_time:.1f}s idle")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state != ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _fill_buffer(self) -> bool:
        """Append one recv() to the buffer. False when the peer is gone."""
        chunk = self._recv()
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLargeError(f"Request too large: {len(self._buffer)} bytes")
        return True

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _read_fixed(self, head: bytes, body_start: int) -> int:
        """Buffer a Content-Length body; return where the message ends."""
        content_length = self._parse_content_length(head)

        if body_start + content_length > self.max_request_size:
            raise RequestTooLargeError(
                f"Request too large: {body_start + content_length} bytes"
            )

        while len(self._buffer) - body_start < content_length:
            if not self._fill_buffer():
                # Peer closed mid-body; the parser reports the short body
                break

        return min(body_start + content_length, len(self._buffer))

    def _read_chunked(self, transfer_encoding: bytes, body_start: int) -> int:
        """
        Buffer a chunked body; return where the message ends.

        Framing problems are left for RequestParser to report. An unknown
        coding ends the message at the headers, and a malformed chunk
        stream takes the whole buffer, since neither can be resynchronized.
        """
        if not is_chunked(transfer_encoding.decode("latin-1")):
            return body_start

        while True:
            try:
                decoded = decode_chunked(self._buffer[body_start:])
            except HTTPParseError:
                return len(self._buffer)

            if decoded is not None:
                return body_start + decoded[1]
            if not self._fill_buffer():
                return len(self._buffer)

    @staticmethod
    def _header_value(headers: bytes, name: bytes) -> Optional[bytes]:
        """Value of the first ``name`` header in a raw header block."""
        for line in headers.split(b"\r\n")[1:]:
            key, sep, value = line.partition(b":")
            if sep and key.strip().lower() == name:
                return value.strip()
        return None

    @classmethod
    def _parse_content_length(cls, headers: bytes) -> int:
        """
        Content-Length from a raw header block, or 0.

        Only used to find the end of the message. Malformed values read as
        0 here and are rejected by RequestParser with a proper 400.
        """
        value = cls._header_value(headers, b"content-length")
        if value is None:
            return 0
        try:
            return max(int(value), 0)
        except ValueError:
            return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write a serialized response.

        Returns:
            True if every byte was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark the connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Half-close, drain briefly, then release the socket.

        Sending FIN first and draining what the client already sent keeps
        the kernel from answering with RST, which could discard the
        response before the client reads it. Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection from {self.client_ip} closed after "
            f"{self.requests_handled} requests ({self.age:.2f}s)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
