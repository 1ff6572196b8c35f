"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.1 request into an HTTPRequest.

    PUT /update?id=1 HTTP/1.1\r\n          ← request line
    Host: localhost:8080\r\n               ← headers (case-insensitive)
    Content-Type: application/json\r\n
    Content-Length: 36\r\n
    \r\n                                   ← end of headers
    {"id":"1","name":"Eve","age":26}       ← body (Content-Length bytes)

The request line is split into method, target and version. The target is
split again into the path (percent-decoded) and the query string, which
is what the user handlers read their ``id`` from:

    /update?id=1
    ───┬─── ──┬─
       │      └── query_params = {"id": ["1"]}
       └───────── path = "/update"

Blank query values are kept (``/get?id=`` gives ``{"id": [""]}``) so a
handler can tell "present but empty" from "absent" if it wants to.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlsplit, unquote
import re
import json

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when a request (or its body) cannot be parsed.

    Carries the status code to answer with:

        400 Bad Request                - malformed syntax, bad JSON body
        413 Payload Too Large          - request over the size limit
        501 Not Implemented            - a Transfer-Encoding other than chunked
        505 HTTP Version Not Supported - anything but HTTP/1.0 or 1.1
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         Upper-case method token (GET, POST, PUT, DELETE, ...)
        path:           Request path without the query string
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header name → value, names lower-cased
        query_params:   Query parameter → list of values
        body:           Raw body bytes (exactly Content-Length of them)
        client_address: (ip, port) of the peer
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)

    _body_json: Optional[Any] = field(default=None, repr=False)
    _json_loaded: bool = field(default=False, repr=False)

    # =========================================================================
    # HEADER SHORTCUTS
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """Media type of the body, without parameters ("application/json")."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open after this request.

        HTTP/1.1 defaults to keep-alive unless ``Connection: close``;
        HTTP/1.0 defaults to close unless ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # BODY
    # =========================================================================

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON, or None when the body is empty.

        Decoded once and cached.

        Raises:
            HTTPParseError: The body is not UTF-8 or not valid JSON.
        """
        if not self._json_loaded:
            if self.body:
                try:
                    self._body_json = json.loads(self.body.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    raise HTTPParseError(f"Invalid JSON body: {e}")
            self._json_loaded = True
        return self._body_json

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or ``default`` when absent."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """Every value of a repeated query parameter (``?id=a&id=b``)."""
        return self.query_params.get(name, [])


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    ==========================================================================
    PARSING STEPS
    ==========================================================================

        1. Size check                        → 413 if over the limit
        2. Find the \\r\\n\\r\\n header end  → 400 if missing
        3. Request line                      → 400 / 505
        4. Header lines                      → lower-cased names
        5. Body, chunked or Content-Length   → 400 if short or invalid,
                                               501 for other codings

    ==========================================================================
    """


    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw request bytes, as returned by Connection.read_request().
            client_address: Peer (ip, port), kept for the access log.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: The request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        if "transfer-encoding" in headers:
            body = self._read_chunked_body(headers["transfer-encoding"], body)
        else:
            body = self._read_fixed_body(headers, body)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
        )

    @staticmethod
    def _read_fixed_body(headers: Dict[str, str], body: bytes) -> bytes:
        """The first Content-Length bytes of ``body``."""
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(
                f"Invalid Content-Length: {headers['content-length']!r}"
            )
        if content_length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {content_length}")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        return body[:content_length]

    @staticmethod
    def _read_chunked_body(transfer_encoding: str, body: bytes) -> bytes:
        """
        Decode a ``Transfer-Encoding: chunked`` body.

        Transfer-Encoding overrides Content-Length. Only plain ``chunked``
        is understood; gzip and friends are answered with 501.
        """
        if not is_chunked(transfer_encoding):
            raise HTTPParseError(
                f"Unsupported Transfer-Encoding: {transfer_encoding}",
                status_code=HTTPStatus.NOT_IMPLEMENTED,
            )

        decoded = decode_chunked(body)
        if decoded is None:
            raise HTTPParseError("Incomplete chunked body")
        return decoded[0]

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Split ``METHOD SP TARGET SP VERSION`` into its parts.

        Returns:
            (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        parsed = urlsplit(target)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lower-cased name.

        Repeated headers are joined with ", ". Obsolete line folding
        (a line starting with whitespace) continues the previous header.
        Lines that are not ``name: value`` are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


CHUNK_SIZE_PATTERN = re.compile(rb"^[0-9A-Fa-f]+$")


def is_chunked(transfer_encoding: str) -> bool:
    """True when ``chunked`` is the one and only transfer coding."""
    return transfer_encoding.strip().lower() == "chunked"


def decode_chunked(data: bytes) -> Optional[tuple[bytes, int]]:
    """
    Decode a chunked body from the start of ``data``.

        5\\r\\nhello\\r\\n          ← size in hex, then that many bytes
        0;ext=1\\r\\n              ← last chunk (extensions ignored)
        Trailer: x\\r\\n           ← optional trailers (discarded)
        \\r\\n

    Returns:
        (body, bytes consumed), or None when ``data`` stops before the
        final empty line.

    Raises:
        HTTPParseError: A size line is not hex or a chunk is not
                        followed by CRLF.
    """
    body = bytearray()
    pos = 0

    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None

        size_field = data[pos:line_end].split(b";", 1)[0].strip()
        if not CHUNK_SIZE_PATTERN.match(size_field):
            raise HTTPParseError(f"Invalid chunk size: {size_field!r}")
        size = int(size_field, 16)
        pos = line_end + 2

        if size == 0:
            break

        if len(data) < pos + size + 2:
            return None
        if data[pos + size:pos + size + 2] != b"\r\n":
            raise HTTPParseError("Chunk data not followed by CRLF")

        body += data[pos:pos + size]
        pos += size + 2

    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None
        trailer = data[pos:line_end]
        pos = line_end + 2
        if not trailer:
            return bytes(body), pos


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
