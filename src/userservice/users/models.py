"""
User record and its JSON shape.

    {"id": "1", "name": "Eve", "age": 25}

Decoding is deliberately lenient about what is *missing* and strict about
what is *wrong*:

    missing field / null      → zero value ("", "", 0)
    unknown field             → ignored
    key in another case       → matched ("ID" sets id)
    wrong JSON type           → InvalidUserError
    top-level not an object   → InvalidUserError
"""

from dataclasses import dataclass
from typing import Any, Dict


class InvalidUserError(ValueError):
    """A JSON value does not have the shape of a User."""


@dataclass(frozen=True)
class User:
    """
    A stored user.

    Frozen: the repository hands the same instance to every reader, so
    nobody may change it in place. Replace it with update() instead.
    """

    id: str = ""
    name: str = ""
    age: int = 0

    @classmethod
    def from_json(cls, data: Any) -> "User":
        """
        Build a User from a decoded JSON value.

        Raises:
            InvalidUserError: ``data`` is not an object, or a field has the
                              wrong type.
        """
        if not isinstance(data, dict):
            raise InvalidUserError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        return cls(
            id=_string_field(data, "id"),
            name=_string_field(data, "name"),
            age=_int_field(data, "age"),
        )

    def to_json(self) -> Dict[str, Any]:
        """The JSON object for this user, keys in id/name/age order."""
        return {"id": self.id, "name": self.name, "age": self.age}


def _lookup(data: Dict[str, Any], key: str) -> Any:
    """
    ``data[key]``, falling back to a case-insensitive match.

    An exact key wins. Otherwise the last key that matches ignoring case
    is used, so {"ID": "1"} sets the id.
    """
    if key in data:
        return data[key]
    value = None
    for name, candidate in data.items():
        if name.lower() == key:
            value = candidate
    return value


def _string_field(data: Dict[str, Any], key: str) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidUserError(f"Field {key!r} must be a string")
    return value


def _int_field(data: Dict[str, Any], key: str) -> int:
    value = _lookup(data, key)
    if value is None:
        return 0
    # bool is an int subclass; true/false is not an age
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidUserError(f"Field {key!r} must be an integer")
    return value
