"""
=============================================================================
USER REPOSITORY
=============================================================================

The only shared mutable state in the service: a dict from user id to
User, guarded by one lock.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONCURRENT ACCESS                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Worker-0  create(u1) ──┐                                           │
    │   Worker-1  read("1")  ──┼──►  _lock  ──►  _users: {id: User}        │
    │   Worker-2  list()     ──┘     (one at a time)                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each operation holds the lock for its whole body, so no caller ever sees
a half-applied change. Nothing spans operations: a list() running next to
a create() may or may not include the new record, and two writers to the
same id resolve as last-writer-wins.

Records are frozen dataclasses, so returning them without copying is
safe; list() returns a new list so callers can iterate without the lock.

=============================================================================
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from .models import User


logger = logging.getLogger(__name__)


class UserRepository:
    """
    Thread-safe in-memory store of users keyed by id.

    Usage:
        repo = UserRepository()
        repo.create(User(id="1", name="Eve", age=25))

        user, found = repo.read("1")     # (User(...), True)
        user, found = repo.read("2")     # (None, False)
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    def create(self, user: User) -> None:
        """Store ``user`` under ``user.id``, replacing any existing record."""
        with self._lock:
            self._users[user.id] = user
        logger.debug(f"Created user {user.id!r}")

    def read(self, user_id: str) -> Tuple[Optional[User], bool]:
        """
        Look up a user.

        Returns:
            (user, True) when present, (None, False) otherwise.
        """
        with self._lock:
            user = self._users.get(user_id)
        return user, user is not None

    def update(self, user_id: str, new_user: User) -> None:
        """
        Store ``new_user`` under ``user_id``, inserting if absent.

        The key is ``user_id``, not ``new_user.id``; the two are allowed to
        differ and the record is kept exactly as given.
        """
        with self._lock:
            self._users[user_id] = new_user
        logger.debug(f"Updated user {user_id!r}")

    def delete(self, user_id: str) -> None:
        """Remove the record for ``user_id``. Absent ids are a no-op."""
        with self._lock:
            removed = self._users.pop(user_id, None)
        if removed is not None:
            logger.debug(f"Deleted user {user_id!r}")

    def list(self) -> List[User]:
        """Snapshot of every stored user, in no particular order."""
        with self._lock:
            return list(self._users.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._users
