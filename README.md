# minirt

`minirt` is a small, self-contained, single-threaded async runtime. It
drives coroutines with its own reactor rather than `asyncio`, and it comes
with the pieces that a program usually needs around an event loop:

- **`minirt.runtime`**: `block_on` runs an awaitable to completion, and
  `Reactor` waits on pollables such as `TimerPollable` and `IoPollable`.
  `entrypoint` turns an argument-less `async def` into a plain function that
  starts the runtime.
- **`minirt.clock`**: `Duration`, `Instant`, `SystemTime`, `Timer`, `sleep`,
  `sleep_until` and `interval`. A `Duration` or an `Instant` can be awaited
  directly. Awaiting a `Duration` sleeps for that long, and awaiting an
  `Instant` sleeps until that moment.
- **`minirt.futures`**: `delay(future, deadline)` holds a future back until a
  deadline has passed. `timeout(future, deadline)` raises `TimeoutError` if
  the deadline comes first. A deadline can be a `Duration`, an `Instant` or
  any other awaitable.
- **`minirt.streams`**: the byte-stream protocols `AsyncRead`, `AsyncWrite`
  and `AsyncSeek`, plus `SeekFrom`, an in-memory `Cursor`, `empty()` and
  `copy(reader, writer)`.
- **`minirt.net`**: `TcpListener`, `TcpStream` and the `incoming()`
  connection iterator.
- **`minirt.rand`**: `get_random_bytes` and `get_insecure_random_bytes`.
- **`minirt.http`**: an HTTP/1.1 client in `minirt.http.client` (`Client`),
  with `Request` (`minirt.http.request`), `Response` and `IncomingBody`
  (`minirt.http.response`), `Method`, `StatusCode`, `HeaderMap`,
  `HeaderValue`, body types in `minirt.http.body` and the `Error` type in
  `minirt.http.errors`.

Only one runtime can run at a time. Calling `block_on` inside a running
`block_on` is an error, and so is calling `Reactor.current()` outside one.

## Timers and deadlines

```python
from minirt.runtime import block_on
from minirt.clock import Duration, Instant, sleep
from minirt.futures import delay, timeout


async def greet():
    return "meow"


async def demo():
    start = Instant.now()
    await sleep(Duration.from_millis(100))
    assert start.elapsed() >= Duration.from_millis(100)

    # A longer delay than the timeout: the deadline wins and an error is raised.
    try:
        await timeout(
            delay(greet(), Duration.from_millis(100)),
            Duration.from_millis(50),
        )
    except TimeoutError:
        pass

    # A shorter delay than the timeout: the value comes through.
    value = await timeout(
        delay(greet(), Duration.from_millis(50)),
        Duration.from_millis(100),
    )
    assert value == "meow"


block_on(demo())
```

## Byte streams

```python
from minirt.runtime import block_on
from minirt.streams import Cursor, SeekFrom, copy


async def demo():
    source = Cursor(b"hello, world")
    sink = Cursor(bytearray())
    await copy(source, sink)
    assert sink.inner == bytearray(b"hello, world")

    await source.seek(SeekFrom.start(7))
    assert await source.read_to_end() == b"world"


block_on(demo())
```

A `Cursor` over a `bytearray` grows when written past its end, one over a
writable `memoryview` keeps its size, and one over `bytes` cannot be written.

## HTTP client

```python
from minirt.clock import Duration
from minirt.http.client import Client
from minirt.http.method import Method
from minirt.http.request import Request
from minirt.runtime import entrypoint


@entrypoint
async def main():
    client = Client()
    client.set_first_byte_timeout(Duration.from_secs(5))
    response = await client.send(Request(Method.GET, "https://example.com/"))
    print(response.status_code)
    body = await response.body.read_to_end()
    print(len(body), "bytes")


main()
```

A request body can be given as `str`, `bytes` or any `Body` through
`Request.set_body`, which returns a new request. A `Body` reports its length
through `len()` when it is known and returns `None` when it is not, for
example for a chunked response. Timeouts can be set with
`set_connect_timeout`, `set_first_byte_timeout` and
`set_between_bytes_timeout`, each taking a `Duration` or a
`datetime.timedelta`. Failures are raised as `minirt.http.errors.Error`,
whose `variant` and `detail` tell what went wrong; a first-byte timeout, for
instance, gives `ErrorVariant.HTTP` with `HttpErrorCode.CONNECTION_READ_TIMEOUT`.

## TCP sockets

`TcpListener.bind` takes an `ip:port` or `[ipv6]:port` address (host names
are not accepted). Listeners and streams close when used as context
managers. An echo server takes a few lines:

```python
from minirt.net import TcpListener
from minirt.runtime import entrypoint
from minirt.streams import copy


@entrypoint
async def serve():
    with await TcpListener.bind("127.0.0.1:8080") as listener:
        print("Listening on", listener.local_addr())
        async for stream in listener.incoming():
            with stream:
                print("Accepted from:", stream.peer_addr())
                await copy(stream, stream)


serve()
```

## What it does not include

`minirt` is a library only: it installs no command-line programs, and it
ships no ready-made echo server or other server to run. The HTTP support is
a client; there is no HTTP server and no handling of incoming requests.

## Tests

The test suite uses pytest. Install the `test` extra to get it.