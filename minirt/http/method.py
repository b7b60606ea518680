"""HTTP request methods."""

from __future__ import annotations

import string

from minirt.http.errors import InvalidMethod

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")

_STANDARD = ("GET", "HEAD", "POST", "PUT", "DELETE", "CONNECT", "OPTIONS", "TRACE", "PATCH")


class Method:
    """An HTTP method: one of the standard ones or any other valid token.

    Methods are case-sensitive.
    """

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        if not isinstance(name, str):
            raise TypeError(f"method name must be a str, got {type(name).__name__}")
        if not name or any(ch not in _TOKEN_CHARS for ch in name):
            raise InvalidMethod()
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @staticmethod
    def from_bytes(data: bytes) -> Method:
        """Parse a method from raw bytes."""
        try:
            text = bytes(data).decode("ascii")
        except UnicodeDecodeError:
            raise InvalidMethod() from None
        return Method(text)

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"Method({self._name!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Method):
            return self._name == other._name
        if isinstance(other, str):
            return self._name == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._name)


for _name in _STANDARD:
    setattr(Method, _name, Method(_name))
del _name