"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and a handler call:

    bytes ──► RequestParser ──► HTTPRequest ──► Router ──► handler
                                                              │
    bytes ◄── HTTPResponse.to_bytes() ◄── HTTPResponse ◄──────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    text_response,
    ok,
    created,
    no_content,
    bad_request,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route, Handler
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    "HTTPResponse",
    "ResponseBuilder",

    "text_response",
    "ok",
    "created",
    "no_content",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",

    "Router",
    "Route",
    "Handler",

    "HTTPStatus",
]
