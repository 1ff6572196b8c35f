"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    HTTP/1.1 200 OK\r\n                          ← status line
    Content-Type: application/json\r\n           ← headers
    Content-Length: 32\r\n                       ← added by to_bytes()
    Date: Sun, 18 Oct 2026 12:00:00 GMT\r\n      ← added by to_bytes()
    Server: userservice/1.0.0\r\n                ← added by to_bytes()
    \r\n
    {"id":"1","name":"Eve","age":25}             ← body

The user endpoints answer in two shapes only: a JSON document (records,
lists of records) or a short plain-text message (confirmations and every
error). The helpers at the bottom of this module produce both.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a connection.

    Handlers return these; the server serializes them with to_bytes().
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE``"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (convenience for logging and tests)."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "userservice") -> bytes:
        """
        Serialize to wire format.

        Adds Content-Length, Date and Server unless already set. A status
        that forbids a body (1xx, 204) is sent with neither body nor
        Content-Length, whatever the handler put in ``body``.
        """
        response_headers = dict(self.headers)
        body = self.body

        if self.status.allows_body:
            response_headers.setdefault("Content-Length", str(len(body)))
        else:
            body = b""
            response_headers.pop("Content-Length", None)
            response_headers.pop("Content-Type", None)

        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .text("User created successfully")
            .build())

    Every method but build() returns the builder.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body. Strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain-text body."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = TEXT_PLAIN
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        JSON body.

        Compact separators unless ``pretty``, so a record goes out as
        ``{"id":"1","name":"Eve","age":25}``.

        Raises:
            TypeError: ``data`` holds something json cannot encode.
            ValueError: ``data`` is circular or holds NaN/Infinity.
        """
        if pretty:
            encoded = json.dumps(data, indent=2, ensure_ascii=False)
        else:
            encoded = json.dumps(
                data, separators=(",", ":"), ensure_ascii=False, allow_nan=False
            )
        self._body = encoded.encode("utf-8")
        self._headers["Content-Type"] = APPLICATION_JSON
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Ask the client to close the connection after this response."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    Example: ``Sun, 18 Oct 2026 12:00:00 GMT``. Names are spelled out
    here instead of via strftime so the output does not depend on locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE RESPONSES
# =============================================================================


def text_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """A plain-text response with the given status."""
    return ResponseBuilder().status(status).text(message).build()


def ok(body: Union[str, dict, list] = "") -> HTTPResponse:
    """
    200 OK.

    dict/list bodies are sent as JSON, strings as plain text.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    else:
        builder.text(body)
    return builder.build()


def created(message: str = "") -> HTTPResponse:
    """201 Created with a plain-text confirmation."""
    return text_response(HTTPStatus.CREATED, message)


def no_content() -> HTTPResponse:
    """204 No Content. Never carries a body."""
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return text_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return text_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(
    allowed_methods: list[str],
    message: str = "Method not allowed"
) -> HTTPResponse:
    """
    405 Method Not Allowed.

    RFC 7231 requires an Allow header listing the methods the target
    does accept.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text(message)
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep ``message`` generic; it goes to the client."""
    return text_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
