"""
=============================================================================
USERSERVICE
=============================================================================

An in-memory user CRUD service over HTTP/1.1, on nothing but the standard
library.

    POST   /create          {"id": "1", "name": "Eve", "age": 25}  → 201
    GET    /get?id=1        → 200 {"id":"1","name":"Eve","age":25}
    PUT    /update?id=1     {"id": "1", "name": "Eve", "age": 26}  → 200
    DELETE /delete?id=1     → 204
    GET    /list            → 200 [...]

Run it:

    python -m userservice --port 8080

Layout:

    users/       the resource: model, repository, handlers
    http/        request parsing, responses, routing
    core/        sockets, connections, thread pool
    middleware/  access logging
    server.py    HTTPServer
    app.py       create_app()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
