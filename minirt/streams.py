"""Asynchronous byte streams: readers, writers, seekable cursors and helpers."""

from __future__ import annotations

import abc
import enum
import errno
import io
from dataclasses import dataclass
from typing import Union

_READ_CHUNK = 2048
_COPY_CHUNK = 1024

Buffer = Union[bytes, bytearray, memoryview]


class AsyncRead(abc.ABC):
    """A source of bytes that is read asynchronously."""

    @abc.abstractmethod
    async def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; an empty result means end of stream."""

    async def read_to_end(self) -> bytes:
        """Read until end of stream and return everything that was read."""
        chunks = []
        while chunk := await self.read(_READ_CHUNK):
            chunks.append(chunk)
        return b"".join(chunks)


class AsyncWrite(abc.ABC):
    """A sink of bytes that is written asynchronously."""

    @abc.abstractmethod
    async def write(self, data: Buffer) -> int:
        """Write some of ``data`` and return how many bytes were accepted."""

    @abc.abstractmethod
    async def flush(self) -> None:
        """Push any buffered bytes to their destination."""

    async def write_all(self, data: Buffer) -> None:
        """Write the whole of ``data``, calling :meth:`write` as often as needed."""
        remaining = bytes(data)
        while True:
            written = await self.write(remaining)
            remaining = remaining[written:]
            if not remaining:
                return
            if written == 0:
                raise OSError("failed to write whole buffer")


class Whence(enum.Enum):
    """The reference point of a seek."""

    START = "start"
    END = "end"
    CURRENT = "current"


@dataclass(frozen=True)
class SeekFrom:
    """A seek target: an offset relative to a reference point."""

    whence: Whence
    offset: int

    def __post_init__(self) -> None:
        if self.whence is Whence.START and self.offset < 0:
            raise ValueError("offset from the start must not be negative")

    @staticmethod
    def start(offset: int) -> SeekFrom:
        return SeekFrom(Whence.START, offset)

    @staticmethod
    def end(offset: int) -> SeekFrom:
        return SeekFrom(Whence.END, offset)

    @staticmethod
    def current(offset: int) -> SeekFrom:
        return SeekFrom(Whence.CURRENT, offset)


class AsyncSeek(abc.ABC):
    """A stream with a movable position."""

    @abc.abstractmethod
    async def seek(self, pos: SeekFrom) -> int:
        """Move to ``pos`` and return the new position from the start."""

    async def rewind(self) -> None:
        """Go back to the beginning of the stream."""
        await self.seek(SeekFrom.start(0))

    async def stream_len(self) -> int:
        """Return the length of the stream, keeping the current position."""
        old_pos = await self.stream_position()
        length = await self.seek(SeekFrom.end(0))
        if old_pos != length:
            await self.seek(SeekFrom.start(old_pos))
        return length

    async def stream_position(self) -> int:
        """Return the current position from the start of the stream."""
        return await self.seek(SeekFrom.current(0))

    async def seek_relative(self, offset: int) -> None:
        """Move by ``offset`` bytes from the current position."""
        await self.seek(SeekFrom.current(offset))


class Cursor(AsyncRead, AsyncWrite, AsyncSeek):
    """An in-memory buffer with a position.

    A ``bytearray`` grows on writes past its end, a writable ``memoryview``
    keeps its size, and read-only buffers cannot be written at all.
    """

    def __init__(self, inner: Buffer) -> None:
        self.inner = inner
        self._position = 0

    def __repr__(self) -> str:
        return f"Cursor(inner={self.inner!r}, position={self._position})"

    @property
    def position(self) -> int:
        return self._position

    @position.setter
    def position(self, value: int) -> None:
        if value < 0:
            raise ValueError("position must not be negative")
        self._position = value

    async def read(self, size: int) -> bytes:
        if size < 0:
            raise ValueError("size must not be negative")
        length = len(self.inner)
        start = min(self._position, length)
        end = min(start + size, length)
        chunk = bytes(self.inner[start:end])
        self._position += len(chunk)
        return chunk

    def _check_writable(self) -> None:
        if isinstance(self.inner, bytearray):
            return
        if isinstance(self.inner, memoryview) and not self.inner.readonly:
            return
        raise io.UnsupportedOperation("cursor over a read-only buffer is not writable")

    async def write(self, data: Buffer) -> int:
        self._check_writable()
        buf = self.inner
        if isinstance(buf, bytearray):
            if self._position > len(buf):
                buf.extend(bytes(self._position - len(buf)))
            buf[self._position:self._position + len(data)] = data
            written = len(data)
        else:
            start = min(self._position, len(buf))
            written = min(len(data), len(buf) - start)
            buf[start:start + written] = bytes(data[:written])
        self._position += written
        return written

    async def flush(self) -> None:
        """Writes land in memory directly, so only writability is checked."""
        self._check_writable()

    async def seek(self, pos: SeekFrom) -> int:
        if pos.whence is Whence.START:
            new_position = pos.offset
        else:
            base = len(self.inner) if pos.whence is Whence.END else self._position
            new_position = base + pos.offset
            if new_position < 0:
                raise OSError(
                    errno.EINVAL, "invalid seek to a negative or overflowing position"
                )
        self._position = new_position
        return new_position


class Empty(AsyncRead, AsyncWrite):
    """Always at end of stream for reads; discards everything written."""

    def __repr__(self) -> str:
        return "Empty()"

    async def read(self, size: int) -> bytes:
        return b""

    async def write(self, data: Buffer) -> int:
        return len(data)

    async def flush(self) -> None:
        """Nothing is ever buffered."""


def empty() -> Empty:
    """Create a reader at end of stream that also swallows all writes."""
    return Empty()


async def copy(reader: AsyncRead, writer: AsyncWrite) -> None:
    """Copy every byte from ``reader`` to ``writer`` until end of stream."""
    while (chunk := await reader.read(_COPY_CHUNK)):
        await writer.write_all(chunk)