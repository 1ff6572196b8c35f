"""
=============================================================================
TRANSPORT
=============================================================================

    SocketServer  accepts TCP connections (main thread)
         │
         ▼
    ThreadPool    one worker per connection
         │
         ▼
    Connection    buffered request reads, keep-alive, graceful close

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLargeError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "ThreadPool",
]
