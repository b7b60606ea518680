"""An HTTP/1.1 client running on the minirt reactor."""

from __future__ import annotations

import errno
import os
import selectors
import socket
import ssl
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union
from urllib.parse import urlsplit

from minirt.clock import Duration
from minirt.futures import timeout
from minirt.http.body import Body
from minirt.http.errors import Error, ErrorVariant, HttpErrorCode
from minirt.http.headers import header_map_from_pairs
from minirt.http.request import Request
from minirt.http.response import BodyKind, IncomingBody, Response
from minirt.runtime import IoPollable, Reactor
from minirt.streams import AsyncRead, AsyncWrite, copy

_MAX_HEAD = 64 * 1024
_RECV_SIZE = 4096
_IN_PROGRESS = {0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN}
if hasattr(errno, "WSAEWOULDBLOCK"):
    _IN_PROGRESS.add(errno.WSAEWOULDBLOCK)


def _http_error(code: HttpErrorCode) -> Error:
    return Error(ErrorVariant.HTTP, code)


def _to_duration(value: Union[Duration, timedelta]) -> Duration:
    if isinstance(value, Duration):
        return value
    if isinstance(value, timedelta):
        return Duration.from_micros(value // timedelta(microseconds=1))
    raise TypeError(f"expected Duration or timedelta, got {type(value).__name__}")


@dataclass
class RequestOptions:
    """Timeouts applied to a request; None means no limit."""

    connect_timeout: Optional[Duration] = None
    first_byte_timeout: Optional[Duration] = None
    between_bytes_timeout: Optional[Duration] = None


async def _wait(sock: socket.socket, events: int, limit: Optional[Duration]) -> None:
    waiting = Reactor.current().wait_for(IoPollable(sock, events))
    if limit is None:
        await waiting
    else:
        await timeout(waiting, limit)


class _Connection:
    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    async def recv(self, size: int, limit: Optional[Duration]) -> bytes:
        while True:
            try:
                return self.sock.recv(size)
            except (BlockingIOError, ssl.SSLWantReadError):
                await _wait(self.sock, selectors.EVENT_READ, limit)
            except ssl.SSLWantWriteError:
                await _wait(self.sock, selectors.EVENT_WRITE, limit)

    async def send_all(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            try:
                sent = self.sock.send(view)
            except (BlockingIOError, ssl.SSLWantWriteError):
                await _wait(self.sock, selectors.EVENT_WRITE, None)
                continue
            except ssl.SSLWantReadError:
                await _wait(self.sock, selectors.EVENT_READ, None)
                continue
            view = view[sent:]

    def close(self) -> None:
        self.sock.close()


class _BodyWriter(AsyncWrite):
    def __init__(self, conn: _Connection, chunked: bool) -> None:
        self._conn = conn
        self._chunked = chunked

    async def write(self, data) -> int:
        data = bytes(data)
        if not data:
            return 0
        frame = b"%x\r\n%s\r\n" % (len(data), data) if self._chunked else data
        await self._conn.send_all(frame)
        return len(data)

    async def flush(self) -> None:
        """Every write is sent in full before it returns."""


class _Source:
    """Bytes from the connection, with anything read ahead kept in front."""

    def __init__(self, conn: _Connection, leftover: bytes, limit: Optional[Duration]) -> None:
        self.conn = conn
        self.leftover = leftover
        self.limit = limit

    async def take(self, size: int) -> bytes:
        if self.leftover:
            out, self.leftover = self.leftover[:size], self.leftover[size:]
            return out
        try:
            return await self.conn.recv(size, self.limit)
        except TimeoutError:
            raise _http_error(HttpErrorCode.CONNECTION_READ_TIMEOUT) from None

    async def read_exact(self, size: int) -> bytes:
        out = b""
        while len(out) < size:
            chunk = await self.take(size - len(out))
            if not chunk:
                raise _http_error(HttpErrorCode.HTTP_RESPONSE_INCOMPLETE)
            out += chunk
        return out

    async def readline(self) -> bytes:
        line = b""
        while not line.endswith(b"\r\n"):
            line += await self.read_exact(1)
            if len(line) > _MAX_HEAD:
                raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
        return line[:-2]


class _FixedReader(AsyncRead):
    def __init__(self, source: _Source, length: int) -> None:
        self._source = source
        self._remaining = length

    async def read(self, size: int) -> bytes:
        if self._remaining == 0 or size == 0:
            if self._remaining == 0:
                self._source.conn.close()
            return b""
        chunk = await self._source.take(min(size, self._remaining))
        if not chunk:
            raise _http_error(HttpErrorCode.HTTP_RESPONSE_INCOMPLETE)
        self._remaining -= len(chunk)
        return chunk


class _ChunkedReader(AsyncRead):
    def __init__(self, source: _Source) -> None:
        self._source = source
        self._remaining = 0
        self._done = False

    async def read(self, size: int) -> bytes:
        if self._done or size == 0:
            return b""
        if self._remaining == 0:
            line = await self._source.readline()
            try:
                length = int(line.split(b";", 1)[0].strip(), 16)
            except ValueError:
                raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR) from None
            if length == 0:
                while await self._source.readline():
                    pass
                self._done = True
                self._source.conn.close()
                return b""
            self._remaining = length
        chunk = await self._source.take(min(size, self._remaining))
        if not chunk:
            raise _http_error(HttpErrorCode.HTTP_RESPONSE_INCOMPLETE)
        self._remaining -= len(chunk)
        if self._remaining == 0 and await self._source.read_exact(2) != b"\r\n":
            raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
        return chunk


class _UntilCloseReader(AsyncRead):
    def __init__(self, source: _Source) -> None:
        self._source = source

    async def read(self, size: int) -> bytes:
        if size == 0:
            return b""
        chunk = await self._source.take(size)
        if not chunk:
            self._source.conn.close()
        return chunk


async def _connect(host: str, port: int, limit: Optional[Duration]) -> socket.socket:
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise _http_error(HttpErrorCode.DNS_ERROR) from exc
    last: Optional[OSError] = None
    for family, kind, proto, _, addr in infos:
        sock = socket.socket(family, kind, proto)
        sock.setblocking(False)
        try:
            err = sock.connect_ex(addr)
            if err not in _IN_PROGRESS:
                raise OSError(err, os.strerror(err))
            if err:
                await _wait(sock, selectors.EVENT_WRITE, limit)
                err = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
                if err:
                    raise OSError(err, os.strerror(err))
            return sock
        except TimeoutError:
            sock.close()
            raise _http_error(HttpErrorCode.CONNECTION_TIMEOUT) from None
        except OSError as exc:
            sock.close()
            last = exc
    if isinstance(last, ConnectionRefusedError):
        raise _http_error(HttpErrorCode.CONNECTION_REFUSED) from last
    raise _http_error(HttpErrorCode.DESTINATION_UNAVAILABLE) from last


async def _start_tls(sock: socket.socket, host: str, limit: Optional[Duration]) -> ssl.SSLSocket:
    context = ssl.create_default_context()
    tls = context.wrap_socket(sock, server_hostname=host, do_handshake_on_connect=False)
    try:
        while True:
            try:
                tls.do_handshake()
                return tls
            except ssl.SSLWantReadError:
                await _wait(tls, selectors.EVENT_READ, limit)
            except ssl.SSLWantWriteError:
                await _wait(tls, selectors.EVENT_WRITE, limit)
    except TimeoutError:
        tls.close()
        raise _http_error(HttpErrorCode.CONNECTION_TIMEOUT) from None
    except ssl.SSLCertVerificationError as exc:
        tls.close()
        raise _http_error(HttpErrorCode.TLS_CERTIFICATE_ERROR) from exc
    except (ssl.SSLError, OSError) as exc:
        tls.close()
        raise _http_error(HttpErrorCode.TLS_PROTOCOL_ERROR) from exc


def _parse_head(head: bytes) -> tuple[int, list[tuple[str, bytes]]]:
    lines = head.split(b"\r\n")
    status_parts = lines[0].split(b" ", 2)
    if len(status_parts) < 2 or not status_parts[0].startswith(b"HTTP/"):
        raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
    code = status_parts[1]
    if len(code) != 3 or not code.isdigit():
        raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
    pairs = []
    for line in lines[1:]:
        name, sep, value = line.partition(b":")
        if not sep:
            raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
        pairs.append((name.decode("latin-1"), value.strip(b" \t")))
    return int(code), pairs


class Client:
    """Sends HTTP requests; optional timeouts are set per client."""

    def __init__(self) -> None:
        self.options: Optional[RequestOptions] = None

    def __repr__(self) -> str:
        return f"Client(options={self.options!r})"

    def _options_mut(self) -> RequestOptions:
        if self.options is None:
            self.options = RequestOptions()
        return self.options

    def set_connect_timeout(self, duration: Union[Duration, timedelta]) -> None:
        """Limit the time spent connecting to the server."""
        self._options_mut().connect_timeout = _to_duration(duration)

    def set_first_byte_timeout(self, duration: Union[Duration, timedelta]) -> None:
        """Limit the wait for the first byte of the response."""
        self._options_mut().first_byte_timeout = _to_duration(duration)

    def set_between_bytes_timeout(self, duration: Union[Duration, timedelta]) -> None:
        """Limit the wait between later chunks of the response."""
        self._options_mut().between_bytes_timeout = _to_duration(duration)

    async def send(self, request: Request) -> Response:
        """Send ``request`` and return the response with its body still unread."""
        outgoing, body = request.into_outgoing()
        options = self.options or RequestOptions()
        if outgoing.scheme not in ("http", "https"):
            raise Error.other(f"scheme rejected: {outgoing.scheme!r}")
        if outgoing.authority is None:
            raise _http_error(HttpErrorCode.HTTP_REQUEST_URI_INVALID)
        parts = urlsplit("//" + outgoing.authority)
        try:
            port = parts.port or (443 if outgoing.scheme == "https" else 80)
        except ValueError:
            raise _http_error(HttpErrorCode.HTTP_REQUEST_URI_INVALID) from None
        host = parts.hostname
        if not host:
            raise _http_error(HttpErrorCode.HTTP_REQUEST_URI_INVALID)

        sock = await _connect(host, port, options.connect_timeout)
        if outgoing.scheme == "https":
            sock = await _start_tls(sock, host, options.connect_timeout)
        conn = _Connection(sock)
        try:
            return await self._exchange(conn, outgoing, body, options)
        except BaseException:
            conn.close()
            raise

    async def _exchange(self, conn: _Connection, outgoing, body: Body, options: RequestOptions):
        names = {name for name, _ in outgoing.headers}
        head = [f"{outgoing.method} {outgoing.path_with_query or '/'} HTTP/1.1".encode("latin-1")]
        if "host" not in names:
            head.append(b"host: " + outgoing.authority.rpartition("@")[2].encode("idna"))
        head.extend(name.encode("ascii") + b": " + value for name, value in outgoing.headers)
        length = body.len()
        chunked = length is None and "content-length" not in names
        if chunked:
            if "transfer-encoding" not in names:
                head.append(b"transfer-encoding: chunked")
        elif "content-length" not in names and (
            length or outgoing.method not in ("GET", "HEAD")
        ):
            head.append(b"content-length: %d" % length)
        head.append(b"connection: close")

        try:
            await conn.send_all(b"\r\n".join(head) + b"\r\n\r\n")
            await copy(body, _BodyWriter(conn, chunked))
            if chunked:
                await conn.send_all(b"0\r\n\r\n")
        except OSError as exc:
            raise _http_error(HttpErrorCode.CONNECTION_TERMINATED) from exc

        buf = b""
        first = True
        while True:
            while b"\r\n\r\n" not in buf:
                limit = options.first_byte_timeout if first else options.between_bytes_timeout
                try:
                    data = await conn.recv(_RECV_SIZE, limit)
                except TimeoutError:
                    raise _http_error(HttpErrorCode.CONNECTION_READ_TIMEOUT) from None
                except OSError as exc:
                    raise _http_error(HttpErrorCode.CONNECTION_TERMINATED) from exc
                if not data:
                    raise _http_error(HttpErrorCode.HTTP_RESPONSE_INCOMPLETE)
                first = False
                buf += data
                if len(buf) > _MAX_HEAD:
                    raise _http_error(HttpErrorCode.HTTP_PROTOCOL_ERROR)
            raw_head, _, buf = buf.partition(b"\r\n\r\n")
            status, pairs = _parse_head(raw_head)
            if not (100 <= status < 200) or status == 101:
                break

        headers = header_map_from_pairs(pairs)
        kind = BodyKind.from_headers(headers)
        source = _Source(conn, buf, options.between_bytes_timeout)
        encoding = b",".join(bytes(v) for v in headers.get_all("transfer-encoding")).lower()
        reader: AsyncRead
        if outgoing.method == "HEAD" or status in (101, 204, 304):
            reader = _FixedReader(source, 0)
        elif b"chunked" in encoding:
            reader = _ChunkedReader(source)
        elif kind.fixed is not None:
            reader = _FixedReader(source, kind.fixed)
        else:
            reader = _UntilCloseReader(source)
        return Response(status, headers, IncomingBody(kind, reader))