"""
=============================================================================
ROUTER
=============================================================================

Static routing table: an exact request path plus a method selects one
handler. There are no path parameters; everything a handler needs beyond
the path comes from the query string or the body.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING TABLE                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _routes = {                                                        │
    │       "/create": {"POST":   Route(create_user)},                    │
    │       "/get":    {"GET":    Route(get_user)},                       │
    │       "/update": {"PUT":    Route(update_user)},                    │
    │       "/delete": {"DELETE": Route(delete_user)},                    │
    │       "/list":   {"GET":    Route(list_users)},                     │
    │   }                                                                  │
    │                                                                      │
    │   GET  /get     → path found, method found  → get_user(request)     │
    │   POST /get     → path found, method missing → 405 + Allow: GET     │
    │   GET  /nothing → path missing               → 404                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Matching is two dictionary lookups, so its cost does not grow with the
number of routes. The path is compared exactly as the client sent it
(after percent-decoding): "/get/" is not "/get".

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, Any, List

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


# Every route handler takes the request and returns the response.
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A (path, method) pair bound to a handler."""

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class Router:
    """
    Exact-match HTTP router.

    Routes are registered once at startup, either directly:

        router.add_route("/list", list_users, method="GET")

    or with the decorator helpers:

        @router.post("/create")
        def create_user(request):
            ...

    handle() then dispatches each request, answering 404 for unknown
    paths and 405 for known paths with the wrong method. Both messages
    can be overridden per router.
    """

    def __init__(
        self,
        not_found_message: str = "Unsupported path",
        method_not_allowed_message: str = "Method not allowed",
    ):
        self.not_found_message = not_found_message
        self.method_not_allowed_message = method_not_allowed_message
        self._routes: Dict[str, Dict[str, Route]] = {}

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str = "GET",
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        """
        Register ``handler`` for ``method`` on ``path``.

        Raises:
            ValueError: The path does not start with "/" or the
                        (path, method) pair is already taken.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        method = method.upper()
        methods = self._routes.setdefault(path, {})
        if method in methods:
            raise ValueError(f"Route already registered: {method} {path}")

        route = Route(path=path, method=method, handler=handler, name=name, meta=meta)
        methods[method] = route
        return route

    def route(
        self,
        path: str,
        method: str,
        name: Optional[str] = None,
        **meta: Any
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(). Returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, **meta)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name, **meta)

    def post(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name, **meta)

    def put(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name, **meta)

    def delete(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name, **meta)

    # =========================================================================
    # MATCHING AND DISPATCH
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[Route]:
        """The route for (method, path), or None."""
        return self._routes.get(path, {}).get(method.upper())

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods registered for ``path``, sorted; empty if the path is unknown."""
        return sorted(self._routes.get(path, {}))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch ``request`` to its handler.

        Unknown path → 404, known path with another method → 405.
        """
        route = self.match(request.method, request.path)
        if route:
            return route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed, self.method_not_allowed_message)

        return not_found(self.not_found_message)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All routes, in registration order."""
        return [route for methods in self._routes.values() for route in methods.values()]

    def describe(self) -> str:
        """
        Human-readable route table, logged at startup:

              POST     /create
              GET      /get
              PUT      /update
        """
        return "\n".join(f"  {route.method:8} {route.path}" for route in self.routes())
