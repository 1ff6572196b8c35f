"""
Unit tests for HTTP response building.
"""

import pytest
import json
from datetime import datetime, timezone

from userservice.http.response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    no_content,
    not_found,
    bad_request,
    method_not_allowed,
    internal_error,
    text_response,
    format_http_date,
)
from userservice.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_server_header(self):
        result = HTTPResponse().to_bytes(server_name="userservice/1.0.0")
        assert b"Server: userservice/1.0.0\r\n" in result

    def test_to_bytes_sets_content_length(self):
        result = HTTPResponse(body=b"hello world").to_bytes()
        assert b"Content-Length: 11\r\n" in result

    def test_no_content_drops_body_and_length(self):
        response = HTTPResponse(
            status=HTTPStatus.NO_CONTENT,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            body=b"User deleted successfully",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 204 No Content\r\n")
        assert b"Content-Length" not in result
        assert b"Content-Type" not in result
        assert result.endswith(b"\r\n\r\n")

    def test_set_header_chaining(self):
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()
        assert response.status == HTTPStatus.CREATED

    def test_json_body_is_compact(self):
        data = {"id": "1", "name": "Eve", "age": 25}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json"
        assert response.body == b'{"id":"1","name":"Eve","age":25}'

    def test_json_empty_list(self):
        assert ResponseBuilder().json([]).build().body == b"[]"

    def test_json_pretty(self):
        response = ResponseBuilder().json({"a": 1}, pretty=True).build()
        assert json.loads(response.body) == {"a": 1}
        assert b"\n" in response.body

    def test_json_rejects_unencodable(self):
        with pytest.raises(TypeError):
            ResponseBuilder().json({"when": object()})

        with pytest.raises(ValueError):
            ResponseBuilder().json({"age": float("nan")})

    def test_text_body(self):
        response = ResponseBuilder().text("Hello, World!").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"Hello, World!"

    def test_close_connection(self):
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_build_copies_headers(self):
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")

        assert "X-B" not in builder.build().headers

    def test_method_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers["X-Custom"] == "value"
        assert response.body == b'{"key":"value"}'


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_ok(self):
        response = ok("Hello")
        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello"

        response = ok({"msg": "hello"})
        assert response.body == b'{"msg":"hello"}'

    def test_created(self):
        response = created("User created successfully")
        assert response.status == HTTPStatus.CREATED
        assert response.text == "User created successfully"

    def test_no_content(self):
        response = no_content()
        assert response.status == HTTPStatus.NO_CONTENT
        assert response.body == b""

    def test_not_found(self):
        response = not_found("User not found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "User not found"
        assert response.headers["Content-Type"].startswith("text/plain")

    def test_bad_request(self):
        response = bad_request("Invalid request body")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "Invalid request body"

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"
        assert response.text == "Method not allowed"

    def test_internal_error(self):
        response = internal_error()
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal Server Error"

    def test_text_response(self):
        response = text_response(HTTPStatus.OK, "User updated successfully")
        assert response.status == HTTPStatus.OK
        assert response.text == "User updated successfully"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NO_CONTENT.phrase == "No Content"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"

    def test_status_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_client_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_server_error

        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
        assert not HTTPStatus.OK.is_error

    def test_allows_body(self):
        assert HTTPStatus.OK.allows_body
        assert not HTTPStatus.NO_CONTENT.allows_body


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
