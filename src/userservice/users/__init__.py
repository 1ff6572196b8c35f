"""
=============================================================================
USERS
=============================================================================

The one resource this service exposes:

    models.py      User record + JSON shape
    repository.py  Thread-safe in-memory store (the only shared state)
    handlers.py    The five CRUD handlers and their routes

=============================================================================
"""

from .models import User, InvalidUserError
from .repository import UserRepository
from .handlers import UserHandlers

__all__ = [
    "User",
    "InvalidUserError",
    "UserRepository",
    "UserHandlers",
]
