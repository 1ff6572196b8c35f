"""
Unit tests for the user handlers, driven through Router.handle.
"""

import json

import pytest

from conftest import make_request
from userservice.http import Router, HTTPStatus
from userservice.users import UserHandlers, UserRepository, User


EVE = {"id": "1", "name": "Eve", "age": 25}


class TestCreateUser:
    """POST /create"""

    def test_create(self, router: Router, repository: UserRepository):
        response = router.handle(make_request("POST", "/create", body=EVE))

        assert response.status == HTTPStatus.CREATED
        assert response.text == "User created successfully"
        assert repository.read("1") == (User(id="1", name="Eve", age=25), True)

    def test_create_overwrites(self, router: Router, repository: UserRepository):
        router.handle(make_request("POST", "/create", body=EVE))
        router.handle(make_request("POST", "/create", body={"id": "1", "name": "Eva", "age": 26}))

        assert len(repository) == 1
        assert repository.read("1")[0].name == "Eva"

    def test_create_partial_body(self, router: Router, repository: UserRepository):
        response = router.handle(make_request("POST", "/create", body={"name": "Anon"}))

        assert response.status == HTTPStatus.CREATED
        assert repository.read("") == (User(id="", name="Anon", age=0), True)

    @pytest.mark.parametrize("body", [
        "{not json",
        "",
        "[1, 2]",
        "null",
        '{"id": "1", "age": "old"}',
        b"\xff\xfe",
    ])
    def test_create_invalid_body(self, router: Router, repository: UserRepository, body):
        response = router.handle(make_request("POST", "/create", body=body))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "Invalid request body"
        assert len(repository) == 0


class TestGetUser:
    """GET /get"""

    def test_get(self, router: Router, repository: UserRepository):
        repository.create(User(id="1", name="Eve", age=25))

        response = router.handle(make_request("GET", "/get", query={"id": "1"}))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "application/json"
        assert response.body == b'{"id":"1","name":"Eve","age":25}'

    def test_get_missing_id(self, router: Router):
        response = router.handle(make_request("GET", "/get"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "User ID not provided"

    def test_get_empty_id(self, router: Router):
        response = router.handle(make_request("GET", "/get", query={"id": ""}))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "User ID not provided"

    def test_get_unknown_id(self, router: Router):
        response = router.handle(make_request("GET", "/get", query={"id": "nonexistent"}))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "User not found"


class TestUpdateUser:
    """PUT /update"""

    def test_update(self, router: Router, repository: UserRepository):
        repository.create(User(id="a", name="Alice", age=30))

        response = router.handle(
            make_request("PUT", "/update", query={"id": "a"}, body={"id": "a", "name": "Bob"})
        )

        assert response.status == HTTPStatus.OK
        assert response.text == "User updated successfully"
        assert repository.read("a") == (User(id="a", name="Bob", age=0), True)

    def test_update_keys_by_query_id(self, router: Router, repository: UserRepository):
        router.handle(make_request("PUT", "/update", query={"id": "a"}, body={"id": "b", "name": "B"}))

        assert repository.read("a") == (User(id="b", name="B", age=0), True)
        assert "b" not in repository

    def test_update_without_id_stores_under_empty_key(self, router: Router, repository: UserRepository):
        response = router.handle(make_request("PUT", "/update", body=EVE))

        assert response.status == HTTPStatus.OK
        assert repository.read("")[0] == User(id="1", name="Eve", age=25)

    def test_update_invalid_body(self, router: Router, repository: UserRepository):
        repository.create(User(id="1", name="Eve", age=25))

        response = router.handle(make_request("PUT", "/update", query={"id": "1"}, body="oops"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "Invalid request body"
        assert repository.read("1")[0].age == 25


class TestDeleteUser:
    """DELETE /delete"""

    def test_delete(self, router: Router, repository: UserRepository):
        repository.create(User(id="1", name="Eve", age=25))

        response = router.handle(make_request("DELETE", "/delete", query={"id": "1"}))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.body == b""
        assert "1" not in repository

    def test_delete_missing_is_still_204(self, router: Router):
        assert router.handle(make_request("DELETE", "/delete", query={"id": "x"})).status == 204
        assert router.handle(make_request("DELETE", "/delete")).status == 204


class TestListUsers:
    """GET /list"""

    def test_list_empty(self, router: Router):
        response = router.handle(make_request("GET", "/list"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"[]"

    def test_list(self, router: Router, repository: UserRepository):
        for i in range(3):
            repository.create(User(id=str(i), name=f"user{i}", age=20 + i))

        response = router.handle(make_request("GET", "/list"))

        users = json.loads(response.body)
        assert sorted(u["id"] for u in users) == ["0", "1", "2"]
        assert {"id": "1", "name": "user1", "age": 21} in users


class TestRouting:
    """Path and method errors for the user routes."""

    def test_routing_table(self, router: Router):
        assert sorted((r.method, r.path) for r in router.routes()) == [
            ("DELETE", "/delete"),
            ("GET", "/get"),
            ("GET", "/list"),
            ("POST", "/create"),
            ("PUT", "/update"),
        ]

    def test_unsupported_path(self, router: Router):
        response = router.handle(make_request("GET", "/users"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "Unsupported path"

    @pytest.mark.parametrize("method,path,allowed", [
        ("GET", "/create", "POST"),
        ("POST", "/get", "GET"),
        ("GET", "/update", "PUT"),
        ("GET", "/delete", "DELETE"),
        ("DELETE", "/list", "GET"),
    ])
    def test_wrong_method(self, router: Router, method, path, allowed):
        response = router.handle(make_request(method, path))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.text == "Method not allowed"
        assert response.headers["Allow"] == allowed

    def test_register_twice_fails(self, router: Router, repository: UserRepository):
        with pytest.raises(ValueError):
            UserHandlers(repository).register(router)


class TestEndToEnd:
    """The full lifecycle of one record."""

    def test_lifecycle(self, router: Router):
        created = router.handle(make_request("POST", "/create", body=EVE))
        assert created.status == 201

        fetched = router.handle(make_request("GET", "/get", query={"id": "1"}))
        assert fetched.status == 200
        assert json.loads(fetched.body) == EVE

        updated = router.handle(
            make_request("PUT", "/update", query={"id": "1"}, body={**EVE, "age": 26})
        )
        assert updated.status == 200

        fetched = router.handle(make_request("GET", "/get", query={"id": "1"}))
        assert json.loads(fetched.body)["age"] == 26

        deleted = router.handle(make_request("DELETE", "/delete", query={"id": "1"}))
        assert deleted.status == 204

        gone = router.handle(make_request("GET", "/get", query={"id": "1"}))
        assert gone.status == 404


class TestEncodingFailure:
    """A response that cannot be encoded is a 500, not a broken 200."""

    def test_unencodable_result(self):
        from userservice.users.handlers import _json_response

        response = _json_response(lambda: {"age": float("inf")})

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal Server Error"
