import time
from datetime import timedelta

import pytest

from minirt.clock import (
    Duration,
    Instant,
    Interval,
    SystemTime,
    Timer,
    interval,
    sleep,
    sleep_until,
    timeout_err,
)
from minirt.runtime import Reactor, block_on


def test_just_sleep():
    start = Instant.now()
    woke = block_on(sleep(Duration.from_secs(1)))
    assert start.duration_since(start) == Duration.from_secs(0)
    assert woke.duration_since(start) >= Duration.from_secs(1)


def test_from_secs_f64_documented_example():
    assert Duration.from_secs_f64(2.7) == Duration.new(2, 700_000_000)


def test_new_carries_extra_nanos():
    assert Duration.new(1, 1_500_000_000) == Duration.from_millis(2500)


def test_unit_constructors_agree():
    assert Duration.from_millis(1) == Duration.from_micros(1000)
    assert Duration.from_secs(3) == Duration.from_millis(3000)


def test_from_secs_f32_close_to_value():
    dur = Duration.from_secs_f32(0.5)
    assert dur == Duration.from_millis(500)


@pytest.mark.parametrize("bad", [-1.0, float("nan"), float("inf")])
def test_from_secs_f64_rejects_bad_values(bad):
    with pytest.raises(ValueError):
        Duration.from_secs_f64(bad)


def test_duration_overflow():
    with pytest.raises(OverflowError):
        Duration.from_secs(20_000_000_000)


def test_duration_arithmetic_round_trip():
    a = Duration.from_millis(1500)
    b = Duration.from_micros(250)
    assert (a + b) - b == a
    assert a + b > a


def test_duration_subtraction_underflow():
    with pytest.raises(OverflowError):
        Duration.from_millis(1) - Duration.from_millis(2)


def test_to_timedelta():
    assert Duration.from_millis(1500).to_timedelta() == timedelta(seconds=1.5)


def test_instant_arithmetic_round_trip():
    now = Instant.now()
    step = Duration.from_secs(2)
    assert (now + step) - step == now
    assert (now + step).duration_since(now) == step


def test_duration_since_saturates_at_zero():
    now = Instant.now()
    later = now + Duration.from_secs(1)
    assert now.duration_since(later) == Duration.from_secs(0)


def test_instant_now_is_monotonic():
    first = Instant.now()
    second = Instant.now()
    assert second >= first
    assert first.elapsed() >= Duration.from_secs(0)


def test_system_time_matches_wall_clock():
    before = time.time()
    now = SystemTime.now()
    after = time.time()
    assert int(before) - 1 <= now.seconds <= int(after) + 1
    assert 0 <= now.nanoseconds < 1_000_000_000


def test_await_duration_directly():
    start = Instant.now()
    woke = block_on(Duration.from_millis(20))
    assert woke.duration_since(start) >= Duration.from_millis(20)


def test_await_instant_directly():
    deadline = Instant.now() + Duration.from_millis(20)
    woke = block_on(deadline)
    assert woke >= deadline


def test_sleep_until():
    deadline = Instant.now() + Duration.from_millis(10)
    woke = block_on(sleep_until(deadline))
    assert woke >= deadline


def test_timer_after():
    async def run():
        timer = Timer.after(Duration.from_millis(10))
        woke = await timer
        return timer.deadline, woke

    deadline, woke = block_on(run())
    assert woke >= deadline


def test_timer_set_after_moves_deadline():
    timer = Timer.at(Instant.now())
    original = timer.deadline
    timer.set_after(Duration.from_secs(5))
    assert timer.deadline >= original + Duration.from_secs(5)


def test_timer_never_cannot_progress_alone():
    with pytest.raises(RuntimeError):
        block_on(Timer.never())


def test_sleep_awaited_twice():
    pause = sleep(Duration.from_millis(1))
    block_on(pause)
    with pytest.raises(RuntimeError, match="polled after completing"):
        block_on(pause)


def test_sleep_outside_runtime():
    steps = sleep(Duration.from_millis(1)).__await__()
    with pytest.raises(RuntimeError):
        steps.send(None)


def test_waiting_leaves_no_pollables_behind():
    async def run():
        await sleep(Duration.from_millis(5))
        return len(Reactor.current().poller)

    assert block_on(run()) == 0


def test_interval_ticks():
    period = Duration.from_millis(10)

    async def run():
        start = Instant.now()
        ticks = []
        async for tick in interval(period):
            ticks.append(tick)
            if len(ticks) == 3:
                break
        return start, ticks

    start, ticks = block_on(run())
    assert len(ticks) == 3
    assert ticks == sorted(ticks)
    assert ticks[-1].duration_since(start) >= Duration.from_millis(30)


def test_interval_is_own_iterator():
    it = Interval(Duration.from_millis(1))
    assert it.__aiter__() is it


def test_timeout_err():
    err = timeout_err("future timed out")
    assert isinstance(err, TimeoutError)
    assert str(err) == "future timed out"