"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this service can put on the wire, with their reason
phrases (RFC 7231).

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - /get, /list, /update                 │
    │        │ 201 Created       - /create                              │
    │        │ 204 No Content    - /delete                              │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - bad JSON body, missing id on /get    │
    │        │ 404 Not Found     - unknown id, unknown path             │
    │        │ 405 Method Not Allowed - known path, wrong method        │
    │        │ 408 Request Timeout    - client too slow to send         │
    │        │ 413 Payload Too Large  - request over max_request_size   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - handler or encoder failure   │
    │        │ 505 HTTP Version Not Supported                           │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'Created'
    """

    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_informational(self) -> bool:
        return 100 <= self < 200

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """4xx or 5xx."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        RFC 7230 section 3.3: 1xx and 204 responses never have a message
        body, and must not send Content-Length.
        """
        return not (self.is_informational or self == HTTPStatus.NO_CONTENT)


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
