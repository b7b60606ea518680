"""Incoming HTTP responses and their bodies."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from minirt.http.body import Body
from minirt.http.errors import Error
from minirt.http.headers import HeaderMap
from minirt.http.status import StatusCode
from minirt.streams import AsyncRead

CHUNK_SIZE = 2048
_U64_MAX = 2**64 - 1
_LENGTH_RE = re.compile(rb"\+?[0-9]+")


@dataclass(frozen=True)
class BodyKind:
    """Either a fixed length (``fixed``) or an unknown, chunked length."""

    fixed: Optional[int] = None

    @property
    def chunked(self) -> bool:
        return self.fixed is None

    @staticmethod
    def from_headers(headers: HeaderMap) -> BodyKind:
        value = headers.get("content-length")
        if value is None:
            return BodyKind(None)
        raw = bytes(value)
        if not _LENGTH_RE.fullmatch(raw) or int(raw) > _U64_MAX:
            raise Error.other("incoming content-length should be a u64; violates HTTP/1.1")
        return BodyKind(int(raw))


class IncomingBody(Body):
    """A response body read from a stream in chunks of up to 2 KiB."""

    def __init__(self, kind: BodyKind, stream: AsyncRead) -> None:
        self.kind = kind
        self._stream = stream
        self._buf: Optional[bytes] = None
        self._offset = 0

    def __repr__(self) -> str:
        return f"IncomingBody(kind={self.kind!r})"

    async def read(self, size: int) -> bytes:
        if size < 0:
            raise ValueError("size must not be negative")
        if self._buf is None:
            chunk = await self._stream.read(CHUNK_SIZE)
            if not chunk:
                return b""
            self._buf = bytes(chunk)
            self._offset = 0
        buf = self._buf
        length = min(len(buf) - self._offset, size)
        out = buf[self._offset:self._offset + length]
        self._offset += length
        if self._offset == len(buf):
            self._buf = None
            self._offset = 0
        return out

    def len(self) -> Optional[int]:
        return self.kind.fixed


class Response:
    """An HTTP response: status, headers and body."""

    def __init__(self, status: Union[StatusCode, int], headers: HeaderMap, body: Body) -> None:
        self.status_code = status if isinstance(status, StatusCode) else StatusCode(status)
        self.headers = headers
        self.body = body

    def __repr__(self) -> str:
        return f"Response(status={self.status_code!r}, headers={self.headers!r})"