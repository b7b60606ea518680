"""Outgoing HTTP requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import SplitResult, urlsplit

from minirt.http.body import Body, EmptyBody, into_body
from minirt.http.headers import HeaderMap, header_map_to_pairs
from minirt.http.method import Method


@dataclass(frozen=True)
class OutgoingRequest:
    """The parts of a request as they go on the wire."""

    method: Method
    scheme: str
    authority: Optional[str]
    path_with_query: Optional[str]
    headers: list[tuple[str, bytes]]


def _split(uri: str) -> SplitResult:
    parts = urlsplit(uri)
    try:
        parts.port
    except ValueError as exc:
        raise ValueError(f"invalid uri {uri!r}: {exc}") from None
    return parts


class Request:
    """An HTTP request: method, URI, headers and a body (empty by default)."""

    def __init__(self, method: Union[Method, str], uri: str) -> None:
        if not isinstance(uri, str):
            raise TypeError(f"uri must be a str, got {type(uri).__name__}")
        self.method = method if isinstance(method, Method) else Method(method)
        self.uri = uri
        self._parts = _split(uri)
        self.headers = HeaderMap()
        self.body: Body = EmptyBody()

    def __repr__(self) -> str:
        return f"Request(method={self.method!r}, uri={self.uri!r}, body={self.body!r})"

    def set_body(self, body: object) -> Request:
        """Return a request with the same method, URI and headers and the given body."""
        request = Request(self.method, self.uri)
        request.headers = self.headers
        request.body = into_body(body)
        return request

    def into_outgoing(self) -> tuple[OutgoingRequest, Body]:
        """Split into the wire description of the request and its body."""
        parts = self._parts
        scheme = parts.scheme.lower()
        if scheme in ("", "https"):
            scheme = "https"
        authority = parts.netloc or None
        path_with_query: Optional[str] = None
        if parts.path or parts.query or authority is not None:
            path_with_query = parts.path or "/"
            if parts.query:
                path_with_query += "?" + parts.query
        outgoing = OutgoingRequest(
            method=self.method,
            scheme=scheme,
            authority=authority,
            path_with_query=path_with_query,
            headers=header_map_to_pairs(self.headers),
        )
        return outgoing, self.body