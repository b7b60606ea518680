"""HTTP body types."""

from __future__ import annotations

import abc
from typing import Union

from minirt.streams import AsyncRead, Cursor, Empty


class Body(AsyncRead):
    """A readable HTTP body that may know its length."""

    @abc.abstractmethod
    def len(self) -> int | None:
        """Return the exact length of the body, or None if unknown."""

    def is_empty(self) -> bool:
        """Return True only if the body is known to be empty."""
        return self.len() == 0


class BoundedBody(Body):
    """A body held in memory, so its length is known."""

    def __init__(self, data: Union[bytes, bytearray, memoryview]) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"body data must be bytes-like, got {type(data).__name__}")
        self._cursor = Cursor(bytes(data))

    def __repr__(self) -> str:
        return f"BoundedBody({self._cursor.inner!r})"

    async def read(self, size: int) -> bytes:
        return await self._cursor.read(size)

    def len(self) -> int:
        return len(self._cursor.inner)


class EmptyBody(Empty, Body):
    """A body with no content."""

    def __repr__(self) -> str:
        return "EmptyBody()"

    def len(self) -> int:
        return 0


def into_body(value: object) -> Body:
    """Turn a body, an empty reader, text or bytes into a :class:`Body`."""
    if isinstance(value, Body):
        return value
    if isinstance(value, Empty):
        return EmptyBody()
    if isinstance(value, str):
        return BoundedBody(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BoundedBody(value)
    raise TypeError(f"cannot use {type(value).__name__} as an HTTP body")