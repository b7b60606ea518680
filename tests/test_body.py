import pytest

from minirt.http.body import Body, BoundedBody, EmptyBody, into_body
from minirt.runtime import block_on
from minirt.streams import Cursor, copy, empty


class _UnknownLength(Body):
    async def read(self, size):
        return b""

    def len(self):
        return None


def test_str_body_reads_back_utf8():
    text = '{"test": "data"}'
    body = into_body(text)
    assert body.len() == len(text.encode())
    assert block_on(body.read_to_end()) == text.encode()


@pytest.mark.parametrize("data", [b"payload", bytearray(b"payload"), memoryview(b"payload")])
def test_bytes_like_bodies(data):
    body = into_body(data)
    assert body.len() == len(bytes(data))
    assert block_on(body.read_to_end()) == bytes(data)


def test_body_passes_through():
    body = BoundedBody(b"abc")
    assert into_body(body) is body


def test_empty_reader_becomes_empty_body():
    body = into_body(empty())
    assert isinstance(body, EmptyBody)
    assert body.len() == 0
    assert body.is_empty() is True
    assert block_on(body.read_to_end()) == b""


def test_is_empty_follows_length():
    assert BoundedBody(b"").is_empty() is True
    assert BoundedBody(b"abc").is_empty() is False


def test_unknown_length_is_not_empty():
    body = _UnknownLength()
    assert body.len() is None
    assert Body.is_empty(body) is False
    assert into_body(body) is body


def test_length_is_whole_body_even_after_reading():
    data = b"hello world"
    body = BoundedBody(data)
    first = block_on(body.read(2))
    assert first == data[:2]
    assert body.len() == len(data)
    assert block_on(body.read_to_end()) == data[2:]


def test_copy_body_into_cursor():
    data = b"abc" * 1000
    sink = Cursor(bytearray())
    block_on(copy(into_body(data), sink))
    assert bytes(sink.inner) == data


@pytest.mark.parametrize("bad", [42, None, ["a"]])
def test_unsupported_values_rejected(bad):
    with pytest.raises(TypeError):
        into_body(bad)


def test_bounded_body_rejects_int():
    with pytest.raises(TypeError):
        BoundedBody(5)