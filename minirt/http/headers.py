"""Header names, header values and an ordered multi-valued header map."""

from __future__ import annotations

import string
from collections.abc import Iterable, Iterator
from typing import Union

from minirt.http.errors import Error, ErrorVariant, InvalidHeaderName, InvalidHeaderValue

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")
_MAX_NAME_LEN = (1 << 16) - 1
_TAB = 0x09
_DEL = 0x7F


def _is_visible(byte: int) -> bool:
    return 0x20 <= byte < _DEL or byte == _TAB


def _is_allowed(byte: int) -> bool:
    return (byte >= 0x20 and byte != _DEL) or byte == _TAB


class HeaderName:
    """A header field name, stored in lower case."""

    __slots__ = ("_name",)

    def __init__(self, name: Union[str, bytes]) -> None:
        if isinstance(name, (bytes, bytearray, memoryview)):
            try:
                name = bytes(name).decode("ascii")
            except UnicodeDecodeError:
                raise InvalidHeaderName() from None
        if not isinstance(name, str):
            raise TypeError(f"header name must be str or bytes, got {type(name).__name__}")
        if not name or len(name) > _MAX_NAME_LEN or any(ch not in _TOKEN_CHARS for ch in name):
            raise InvalidHeaderName()
        self._name = name.lower()

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"HeaderName({self._name!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderName):
            return NotImplemented
        return self._name == other._name

    def __hash__(self) -> int:
        return hash(self._name)


class HeaderValue:
    """A header field value as bytes.

    Text values must be visible ASCII; byte values may also hold bytes of 0x80
    and above. Control characters other than tab are never allowed.
    """

    __slots__ = ("_data",)

    def __init__(self, value: Union[str, bytes]) -> None:
        if isinstance(value, str):
            if any(not _is_visible(ord(ch)) for ch in value if ord(ch) < 0x100) or any(
                ord(ch) >= 0x100 for ch in value
            ):
                raise InvalidHeaderValue()
            self._data = value.encode("ascii")
        elif isinstance(value, (bytes, bytearray, memoryview)):
            data = bytes(value)
            if not all(_is_allowed(b) for b in data):
                raise InvalidHeaderValue()
            self._data = data
        else:
            raise TypeError(f"header value must be str or bytes, got {type(value).__name__}")

    @staticmethod
    def from_str(text: str) -> HeaderValue:
        """Build a value from visible-ASCII text."""
        if not isinstance(text, str):
            raise TypeError(f"expected str, got {type(text).__name__}")
        return HeaderValue(text)

    def to_str(self) -> str:
        """Return the value as text; fails if it holds anything but visible ASCII."""
        if not all(_is_visible(b) for b in self._data):
            raise ValueError("failed to convert header to a str")
        return self._data.decode("ascii")

    def __bytes__(self) -> bytes:
        return self._data

    def __repr__(self) -> str:
        return f"HeaderValue({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderValue):
            return self._data == other._data
        if isinstance(other, bytes):
            return self._data == other
        if isinstance(other, str):
            return self._data == other.encode("utf-8", "surrogateescape")
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._data)


NameLike = Union[HeaderName, str, bytes]
ValueLike = Union[HeaderValue, str, bytes]


def _to_name(name: NameLike) -> HeaderName:
    return name if isinstance(name, HeaderName) else HeaderName(name)


def _to_value(value: ValueLike) -> HeaderValue:
    return value if isinstance(value, HeaderValue) else HeaderValue(value)


def _lookup(name: object) -> HeaderName | None:
    if isinstance(name, HeaderName):
        return name
    if isinstance(name, (str, bytes, bytearray, memoryview)):
        try:
            return HeaderName(name)
        except InvalidHeaderName:
            return None
    return None


class HeaderMap:
    """Header fields in insertion order; a name may carry several values."""

    def __init__(self) -> None:
        self._entries: dict[HeaderName, list[HeaderValue]] = {}

    def insert(self, name: NameLike, value: ValueLike) -> HeaderValue | None:
        """Set ``name`` to the single ``value``; return the first value it replaced."""
        key = _to_name(name)
        new_value = _to_value(value)
        previous = self._entries.get(key)
        self._entries[key] = [new_value]
        return previous[0] if previous else None

    def append(self, name: NameLike, value: ValueLike) -> bool:
        """Add ``value`` under ``name``; return whether the name was already present."""
        key = _to_name(name)
        new_value = _to_value(value)
        values = self._entries.get(key)
        if values is None:
            self._entries[key] = [new_value]
            return False
        values.append(new_value)
        return True

    def get(self, name: NameLike) -> HeaderValue | None:
        """Return the first value under ``name``, or None."""
        key = _lookup(name)
        values = self._entries.get(key) if key is not None else None
        return values[0] if values else None

    def get_all(self, name: NameLike) -> list[HeaderValue]:
        """Return every value under ``name`` in the order they were added."""
        key = _lookup(name)
        if key is None:
            return []
        return list(self._entries.get(key, ()))

    def __contains__(self, name: object) -> bool:
        key = _lookup(name)
        return key is not None and key in self._entries

    def __iter__(self) -> Iterator[tuple[HeaderName, HeaderValue]]:
        for key, values in self._entries.items():
            for value in values:
                yield key, value

    def __len__(self) -> int:
        return sum(len(values) for values in self._entries.values())

    def __repr__(self) -> str:
        pairs = ", ".join(f"{str(k)!r}: {bytes(v)!r}" for k, v in self)
        return f"HeaderMap({{{pairs}}})"


def _display(key: object) -> str:
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key).decode("latin-1")
    return str(key)


def header_map_from_pairs(pairs: Iterable[tuple[NameLike, ValueLike]]) -> HeaderMap:
    """Build a header map from ``(name, value)`` pairs, failing with :class:`Error`."""
    output = HeaderMap()
    for key, value in pairs:
        try:
            name = _to_name(key)
        except InvalidHeaderName as exc:
            raise Error(ErrorVariant.HEADER_NAME, exc).with_context(
                f"header name {_display(key)}"
            ) from exc
        try:
            header_value = _to_value(value)
        except InvalidHeaderValue as exc:
            raise Error(ErrorVariant.HEADER_VALUE, exc).with_context(
                f"header value for {name}"
            ) from exc
        output.append(name, header_value)
    return output


def header_map_to_pairs(header_map: HeaderMap) -> list[tuple[str, bytes]]:
    """Flatten a header map into ``(name, value)`` pairs in map order."""
    return [(str(name), bytes(value)) for name, value in header_map]