"""
Application factory: the user service wired onto an HTTPServer.

    server = create_app(ServerConfig.from_env())
    server.run()

The repository is created here, once, and handed to the handlers. Tests
pass their own to inspect state directly.
"""

from typing import Optional

from .config import ServerConfig
from .middleware import LoggingMiddleware
from .server import HTTPServer
from .users import UserHandlers, UserRepository


def create_app(
    config: Optional[ServerConfig] = None,
    repository: Optional[UserRepository] = None,
) -> HTTPServer:
    """
    Build the user service.

    Args:
        config: Server configuration (defaults to ServerConfig()).
        repository: Backing store; a new empty one when omitted.

    Returns:
        An HTTPServer with access logging and the five user routes.
    """
    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=server.config.log_format))

    if repository is None:
        repository = UserRepository()
    UserHandlers(repository).register(server.router)

    return server
