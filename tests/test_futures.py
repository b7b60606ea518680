import pytest

from minirt.clock import Duration, Instant, sleep
from minirt.futures import Delay, Timeout, delay, timeout
from minirt.runtime import Reactor, block_on


async def meow():
    return "meow"


async def immediately():
    return None


def test_longer_delay_than_timeout_times_out():
    async def run():
        return await timeout(
            delay(meow(), Duration.from_millis(100)), Duration.from_millis(50)
        )

    with pytest.raises(TimeoutError, match="future timed out"):
        block_on(run())


def test_shorter_delay_than_timeout_succeeds():
    async def run():
        return await timeout(
            delay(meow(), Duration.from_millis(50)), Duration.from_millis(100)
        )

    assert block_on(run()) == "meow"


def test_delay_waits_at_least_the_deadline():
    pause = Duration.from_millis(100)

    async def run():
        start = Instant.now()
        value = await delay(meow(), pause)
        return value, start.elapsed()

    value, elapsed = block_on(run())
    assert value == "meow"
    assert elapsed >= pause


def test_delay_with_instant_deadline():
    deadline = Instant.now() + Duration.from_millis(20)

    async def run():
        value = await Delay(meow(), deadline)
        return value, Instant.now()

    value, finished = block_on(run())
    assert value == "meow"
    assert finished >= deadline


def test_delay_awaited_twice():
    pending = delay(meow(), Duration.from_millis(1))
    assert block_on(pending) == "meow"
    with pytest.raises(RuntimeError, match="polled after completing"):
        block_on(pending)


def test_ready_future_wins_over_ready_deadline():
    assert block_on(timeout(meow(), immediately())) == "meow"


def test_any_awaitable_can_be_a_deadline():
    with pytest.raises(TimeoutError):
        block_on(Timeout(sleep(Duration.from_secs(5)), immediately()))


def test_timeout_cancels_the_future():
    async def run():
        try:
            await timeout(sleep(Duration.from_secs(5)), Duration.from_millis(10))
        except TimeoutError:
            return len(Reactor.current().poller)
        return -1

    assert block_on(run()) == 0


def test_timeout_awaited_twice():
    guarded = timeout(meow(), Duration.from_secs(1))
    assert block_on(guarded) == "meow"
    with pytest.raises(RuntimeError, match="polled after completing"):
        block_on(guarded)


def test_timeout_propagates_future_errors():
    async def failing():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        block_on(timeout(failing(), Duration.from_secs(1)))


def test_non_awaitable_deadline_rejected():
    coro = meow()
    try:
        with pytest.raises(TypeError):
            timeout(coro, 5)
    finally:
        coro.close()


def test_non_awaitable_future_rejected():
    with pytest.raises(TypeError):
        delay(42, Duration.from_millis(1))