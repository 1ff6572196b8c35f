"""
=============================================================================
MIDDLEWARE
=============================================================================

A middleware sees every request on its way to the router and every
response on its way back:

    pipeline.add(LoggingMiddleware())      # first added = outermost

        request ──► LoggingMiddleware ──► router.handle ──► handler
                            │                                   │
        response ◄──────────┴───────────────────────────────────┘

Each middleware receives ``next`` and decides when (or whether) to call
it.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Handled", "yes")
                return response

    Returning without calling ``next`` short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle ``request``, normally by delegating to ``next``."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware wrapped around a final handler.

    Usage:
        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append ``middleware`` (it runs inside everything added before it)."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around ``handler``.

        Wrapping runs from the innermost middleware outwards, so the first
        one added ends up being called first.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
