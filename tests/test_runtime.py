import selectors
import socket
import threading
import time

import pytest

from minirt.runtime import (
    IoPollable,
    Pollable,
    Poller,
    Reactor,
    TimerPollable,
    block_on,
    entrypoint,
)

DELAY_NS = 20_000_000


class Flag(Pollable):
    def __init__(self, value):
        self.value = value

    def ready(self):
        return self.value


class Countdown(Pollable):
    def __init__(self, checks):
        self.checks = checks

    def ready(self):
        self.checks -= 1
        return self.checks <= 0


class YieldsForeign:
    def __await__(self):
        yield "foreign"


async def give(value):
    return value


def test_poller_insert_and_get():
    poller = Poller()
    first, second = Flag(True), Flag(False)
    key_first = poller.insert(first)
    key_second = poller.insert(second)
    assert poller.get(key_first) is first
    assert poller.get(key_second) is second
    assert len(poller) == 2


def test_poller_remove_frees_key_for_reuse():
    poller = Poller()
    target = Flag(True)
    key = poller.insert(target)
    poller.insert(Flag(False))
    assert poller.remove(key) is target
    assert poller.get(key) is None
    assert poller.insert(Flag(True)) == key


def test_poller_remove_unknown_key():
    poller = Poller()
    assert poller.remove(7) is None
    assert poller.get(-1) is None


def test_poller_returns_only_ready_keys():
    poller = Poller()
    ready_key = poller.insert(Flag(True))
    poller.insert(Flag(False))
    assert poller.block_until() == [ready_key]


def test_poller_empty_raises():
    with pytest.raises(RuntimeError):
        Poller().block_until()


def test_poller_waits_for_timer():
    poller = Poller()
    deadline = time.monotonic_ns() + DELAY_NS
    key = poller.insert(TimerPollable(deadline))
    assert poller.block_until() == [key]
    assert time.monotonic_ns() >= deadline


def test_poller_spins_on_plain_pollables():
    poller = Poller()
    countdown = Countdown(3)
    key = poller.insert(countdown)
    assert poller.block_until() == [key]
    assert countdown.checks <= 0


def test_timer_pollable_readiness():
    now = time.monotonic_ns()
    assert TimerPollable(now - 1).ready() is True
    assert TimerPollable(now + 10 * DELAY_NS).ready() is False


def test_io_pollable_readiness():
    left, right = socket.socketpair()
    with left, right:
        readable = IoPollable(left, selectors.EVENT_READ)
        assert readable.ready() is False
        right.sendall(b"ping")
        assert readable.ready() is True
        assert IoPollable(right, selectors.EVENT_WRITE).ready() is True


def test_io_pollable_rejects_bad_events():
    left, right = socket.socketpair()
    with left, right:
        with pytest.raises(ValueError):
            IoPollable(left, 0)


def test_current_outside_runtime_raises():
    with pytest.raises(RuntimeError):
        Reactor.current()


def test_block_on_returns_result():
    assert block_on(give("meow")) == "meow"


def test_block_on_waits_for_timer():
    async def wait():
        deadline = time.monotonic_ns() + DELAY_NS
        await Reactor.current().wait_for(TimerPollable(deadline))
        return deadline

    deadline = block_on(wait())
    assert time.monotonic_ns() >= deadline


def test_current_is_stable_and_cleaned_up():
    async def check():
        reactor = Reactor.current()
        await reactor.wait_for(TimerPollable(time.monotonic_ns() + DELAY_NS))
        return reactor, Reactor.current(), len(reactor.poller)

    first, second, pending = block_on(check())
    assert first is second
    assert pending == 0
    with pytest.raises(RuntimeError):
        Reactor.current()


def test_nested_block_on_raises():
    async def outer():
        with pytest.raises(RuntimeError):
            block_on(give(1))
        return "done"

    assert block_on(outer()) == "done"


def test_exception_propagates_and_clears_reactor():
    async def failing():
        await Reactor.current().wait_for(Flag(True))
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        block_on(failing())
    with pytest.raises(RuntimeError):
        Reactor.current()


def test_foreign_yield_raises():
    with pytest.raises(TypeError):
        block_on(YieldsForeign())


def test_non_awaitable_raises():
    with pytest.raises(TypeError):
        block_on(42)


def test_wait_for_socket_data():
    left, right = socket.socketpair()
    payload = b"hello"

    def send_later():
        time.sleep(0.02)
        right.sendall(payload)

    async def receive():
        await Reactor.current().wait_for(IoPollable(left, selectors.EVENT_READ))
        return left.recv(1024)

    with left, right:
        sender = threading.Thread(target=send_later)
        sender.start()
        try:
            assert block_on(receive()) == payload
        finally:
            sender.join()


def test_block_until_without_waker_raises():
    reactor = Reactor()
    reactor.poller.insert(Flag(True))
    with pytest.raises(RuntimeError):
        reactor.block_until()


def test_entrypoint_runs_async_function():
    async def main():
        await Reactor.current().wait_for(Flag(True))
        return "meow"

    run = entrypoint(main)
    result = run()
    assert result == "meow"
    assert run.__name__ == "main"


def test_entrypoint_rejects_sync_function():
    def main():
        return None

    with pytest.raises(TypeError):
        entrypoint(main)


def test_entrypoint_rejects_arguments():
    async def main(argument):
        return argument

    with pytest.raises(TypeError):
        entrypoint(main)


def test_entrypoint_rejects_variadic_arguments():
    async def main(*args):
        return args

    with pytest.raises(TypeError):
        entrypoint(main)