"""
=============================================================================
USER HANDLERS
=============================================================================

The five HTTP-facing CRUD operations and the routing table that exposes
them.

    ┌──────────┬────────┬──────────────┬──────────────────────────────────┐
    │ Path     │ Method │ Handler      │ Responses                        │
    ├──────────┼────────┼──────────────┼──────────────────────────────────┤
    │ /create  │ POST   │ create_user  │ 201 │ 400 bad body               │
    │ /get     │ GET    │ get_user     │ 200 JSON │ 400 no id │ 404      │
    │ /update  │ PUT    │ update_user  │ 200 │ 400 bad body               │
    │ /delete  │ DELETE │ delete_user  │ 204                              │
    │ /list    │ GET    │ list_users   │ 200 JSON array                   │
    └──────────┴────────┴──────────────┴──────────────────────────────────┘

Each handler is straight-line: decode the query/body, make one repository
call, encode the result. The repository is passed in once, when the
handlers are constructed; there is no module-level store.

/update and /delete take ``id`` from the query string without checking
it. An empty or missing id on /update stores the record under "", and on
/delete removes nothing. /update keys the record by the query id even if
the body carries a different "id".

=============================================================================
"""

import logging
from typing import Any, Callable

from ..http import (
    HTTPRequest,
    HTTPResponse,
    HTTPParseError,
    Router,
    bad_request,
    created,
    internal_error,
    no_content,
    not_found,
    ok,
)
from .models import InvalidUserError, User
from .repository import UserRepository


logger = logging.getLogger(__name__)


MSG_CREATED = "User created successfully"
MSG_UPDATED = "User updated successfully"
MSG_INVALID_BODY = "Invalid request body"
MSG_ID_MISSING = "User ID not provided"
MSG_NOT_FOUND = "User not found"


class UserHandlers:
    """
    Request handlers bound to one UserRepository.

    Usage:
        handlers = UserHandlers(UserRepository())
        handlers.register(router)
    """

    def __init__(self, repository: UserRepository):
        self.repository = repository

    # =========================================================================
    # ROUTING TABLE
    # =========================================================================

    def register(self, router: Router) -> Router:
        """Add the five user routes to ``router`` and return it."""
        router.post("/create", name="create_user")(self.create_user)
        router.get("/get", name="get_user")(self.get_user)
        router.put("/update", name="update_user")(self.update_user)
        router.delete("/delete", name="delete_user")(self.delete_user)
        router.get("/list", name="list_users")(self.list_users)
        return router

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def create_user(self, request: HTTPRequest) -> HTTPResponse:
        """POST /create: store the body under its own id."""
        try:
            user = self._decode_user(request)
        except (HTTPParseError, InvalidUserError) as e:
            logger.debug(f"Rejected /create body: {e}")
            return bad_request(MSG_INVALID_BODY)

        self.repository.create(user)
        return created(MSG_CREATED)

    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        """GET /get?id=<id>: the stored record as JSON."""
        user_id = request.get_query("id", "")
        if not user_id:
            return bad_request(MSG_ID_MISSING)

        user, found = self.repository.read(user_id)
        if not found:
            return not_found(MSG_NOT_FOUND)

        return _json_response(user.to_json)

    def update_user(self, request: HTTPRequest) -> HTTPResponse:
        """PUT /update?id=<id>: replace the record stored under the query id."""
        user_id = request.get_query("id", "")
        try:
            new_user = self._decode_user(request)
        except (HTTPParseError, InvalidUserError) as e:
            logger.debug(f"Rejected /update body: {e}")
            return bad_request(MSG_INVALID_BODY)

        self.repository.update(user_id, new_user)
        return ok(MSG_UPDATED)

    def delete_user(self, request: HTTPRequest) -> HTTPResponse:
        """DELETE /delete?id=<id>: remove the record if present."""
        user_id = request.get_query("id", "")
        self.repository.delete(user_id)
        # 204: no confirmation text, the status says it
        return no_content()

    def list_users(self, request: HTTPRequest) -> HTTPResponse:
        """GET /list: every stored record as a JSON array."""
        users = self.repository.list()
        return _json_response(lambda: [user.to_json() for user in users])

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _decode_user(request: HTTPRequest) -> User:
        """
        Decode the request body as a User.

        An empty body is invalid, the same as malformed JSON.

        Raises:
            HTTPParseError: Body is not JSON.
            InvalidUserError: Body is JSON but not a User.
        """
        if not request.body:
            raise InvalidUserError("Empty request body")
        return User.from_json(request.json)


def _json_response(produce: Callable[[], Any]) -> HTTPResponse:
    """
    200 with the JSON encoding of ``produce()``.

    Encoding failures are answered with 500 instead of a broken or empty
    200.
    """
    try:
        return ok(produce())
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to encode response: {e}")
        return internal_error()
