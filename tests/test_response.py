import pytest

from minirt.http.errors import Error, ErrorVariant
from minirt.http.headers import HeaderMap
from minirt.http.response import CHUNK_SIZE, BodyKind, IncomingBody, Response
from minirt.http.status import StatusCode
from minirt.runtime import block_on
from minirt.streams import Cursor


def _headers(**pairs):
    headers = HeaderMap()
    for name, value in pairs.items():
        headers.insert(name.replace("_", "-"), value)
    return headers


def test_body_kind_fixed():
    kind = BodyKind.from_headers(_headers(content_length="42"))
    assert kind.fixed == 42
    assert not kind.chunked


def test_body_kind_chunked_without_length():
    assert BodyKind.from_headers(_headers(transfer_encoding="chunked")).chunked
    assert BodyKind.from_headers(HeaderMap()).fixed is None


def test_body_kind_invalid_length():
    with pytest.raises(Error) as info:
        BodyKind.from_headers(_headers(content_length="abc"))
    assert info.value.variant is ErrorVariant.OTHER
    assert str(info.value) == "incoming content-length should be a u64; violates HTTP/1.1"


def test_incoming_body_small_reads_reassemble():
    data = bytes(range(256)) * 20
    body = IncomingBody(BodyKind(len(data)), Cursor(data))

    async def run():
        parts = []
        while chunk := await body.read(7):
            assert len(chunk) <= 7
            parts.append(chunk)
        return b"".join(parts)

    assert block_on(run()) == data
    assert body.len() == len(data)


def test_incoming_body_read_to_end_large():
    data = b"x" * (CHUNK_SIZE * 3 + 5)
    body = IncomingBody(BodyKind(None), Cursor(data))
    assert block_on(body.read_to_end()) == data
    assert body.len() is None


def test_response_fields():
    headers = _headers(content_type="text/plain")
    body = IncomingBody(BodyKind(0), Cursor(b""))
    resp = Response(404, headers, body)
    assert resp.status_code == StatusCode(404)
    assert str(resp.status_code) == "404 NotFound"
    assert resp.headers.get("Content-Type") == "text/plain"
    assert block_on(resp.body.read_to_end()) == b""