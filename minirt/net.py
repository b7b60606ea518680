"""Asynchronous TCP listeners and streams on the minirt reactor."""

from __future__ import annotations

import ipaddress
import os
import re
import selectors
import socket
from typing import Union

from minirt.runtime import IoPollable, Reactor
from minirt.streams import AsyncRead, AsyncWrite

_PORT_RE = re.compile(r"[0-9]+")
_PORT_MAX = 0xFFFF

SocketAddress = Union[tuple[str, int], tuple[str, int, int, int]]


def _parse_socket_addr(addr: str) -> tuple[socket.AddressFamily, SocketAddress]:
    """Parse ``ip:port`` or ``[ipv6]:port``; host names are not accepted."""
    try:
        if not isinstance(addr, str):
            raise ValueError
        if addr.startswith("["):
            host, sep, port_text = addr[1:].partition("]:")
            if not sep:
                raise ValueError
            ip: Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
            ip = ipaddress.IPv6Address(host)
        else:
            host, sep, port_text = addr.rpartition(":")
            if not sep:
                raise ValueError
            ip = ipaddress.IPv4Address(host)
        if not _PORT_RE.fullmatch(port_text):
            raise ValueError
        port = int(port_text)
        if port > _PORT_MAX:
            raise ValueError
    except ValueError:
        raise OSError("failed to parse string to socket addr") from None
    if isinstance(ip, ipaddress.IPv6Address):
        return socket.AF_INET6, (str(ip), port, 0, 0)
    return socket.AF_INET, (str(ip), port)


def _format_addr(sockaddr: SocketAddress) -> str:
    host, port = sockaddr[0], sockaddr[1]
    if len(sockaddr) == 4 or ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


async def _wait(sock: socket.socket, events: int) -> None:
    await Reactor.current().wait_for(IoPollable(sock, events))


class TcpListener:
    """A TCP socket server, listening for connections."""

    def __init__(self, sock: socket.socket) -> None:
        self._socket = sock

    def __repr__(self) -> str:
        return f"TcpListener(socket={self._socket!r})"

    @staticmethod
    async def bind(addr: str) -> TcpListener:
        """Create a listener bound to ``addr``, ready to accept connections."""
        family, sockaddr = _parse_socket_addr(addr)
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            if os.name == "posix":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind(sockaddr)
            sock.listen()
        except BaseException:
            sock.close()
            raise
        return TcpListener(sock)

    def local_addr(self) -> str:
        """Return the local address of this listener as ``ip:port``."""
        return _format_addr(self._socket.getsockname())

    def incoming(self) -> Incoming:
        """Return an endless async iterator over accepted connections."""
        return Incoming(self)

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> TcpListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Incoming:
    """Accepts connections on a listener, one per step, without end."""

    def __init__(self, listener: TcpListener) -> None:
        self._listener = listener

    def __repr__(self) -> str:
        return f"Incoming(listener={self._listener!r})"

    def __aiter__(self) -> Incoming:
        return self

    async def __anext__(self) -> TcpStream:
        sock = self._listener._socket
        while True:
            await _wait(sock, selectors.EVENT_READ)
            try:
                conn, _ = sock.accept()
            except (BlockingIOError, InterruptedError):
                continue
            conn.setblocking(False)
            return TcpStream(conn)


class TcpStream(AsyncRead, AsyncWrite):
    """A TCP connection between a local and a remote socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._socket = sock

    def __repr__(self) -> str:
        return f"TcpStream(socket={self._socket!r})"

    def peer_addr(self) -> str:
        """Return the address of the remote peer as ``ip:port``."""
        return _format_addr(self._socket.getpeername())

    async def read(self, size: int) -> bytes:
        if size < 0:
            raise ValueError("size must not be negative")
        if size == 0:
            return b""
        while True:
            await _wait(self._socket, selectors.EVENT_READ)
            try:
                return self._socket.recv(size)
            except (BlockingIOError, InterruptedError):
                continue

    async def write(self, data) -> int:
        view = memoryview(bytes(data))
        total = len(view)
        while view:
            await _wait(self._socket, selectors.EVENT_WRITE)
            try:
                sent = self._socket.send(view)
            except (BlockingIOError, InterruptedError):
                continue
            view = view[sent:]
        return total

    async def flush(self) -> None:
        """Sockets hold no user-space buffer; only a closed stream fails."""
        if self._socket.fileno() == -1:
            raise OSError("Stream was closed")

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> TcpStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()