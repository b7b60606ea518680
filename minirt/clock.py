"""Durations, monotonic instants, timers and sleeping for the minirt runtime."""

from __future__ import annotations

import math
import struct
import time
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction
from typing import Optional

from minirt.runtime import Reactor, TimerPollable

_NANOS_PER_SEC = 1_000_000_000
_U64_MAX = 2**64 - 1
_U32_MAX = 2**32 - 1


def timeout_err(message: str) -> TimeoutError:
    """Build the error reported when an operation runs out of time."""
    return TimeoutError(message)


def _check_non_negative_int(value: int, name: str, limit: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > limit:
        raise OverflowError(f"{name} out of range: {value}")


def _nanos_from_seconds(secs: Fraction) -> int:
    nanos = round(secs * _NANOS_PER_SEC)
    if nanos > _U64_MAX:
        raise OverflowError("can not convert float seconds to Duration: value overflowed")
    return nanos


def _check_float_seconds(secs: float) -> None:
    if not math.isfinite(secs):
        raise ValueError("can not convert float seconds to Duration: value is not finite")
    if secs < 0.0:
        raise ValueError("can not convert float seconds to Duration: value is negative")


@dataclass(frozen=True, order=True)
class Duration:
    """A span of time in whole nanoseconds, limited to an unsigned 64-bit range."""

    nanos: int

    def __post_init__(self) -> None:
        _check_non_negative_int(self.nanos, "duration in nanoseconds", _U64_MAX)

    @staticmethod
    def new(secs: int, nanos: int) -> Duration:
        """Create a duration from whole seconds plus extra nanoseconds."""
        _check_non_negative_int(secs, "seconds", _U64_MAX)
        _check_non_negative_int(nanos, "nanoseconds", _U32_MAX)
        return Duration(secs * _NANOS_PER_SEC + nanos)

    @staticmethod
    def from_secs(secs: int) -> Duration:
        _check_non_negative_int(secs, "seconds", _U64_MAX)
        return Duration(secs * _NANOS_PER_SEC)

    @staticmethod
    def from_millis(millis: int) -> Duration:
        _check_non_negative_int(millis, "milliseconds", _U64_MAX)
        return Duration(millis * 1_000_000)

    @staticmethod
    def from_micros(micros: int) -> Duration:
        _check_non_negative_int(micros, "microseconds", _U64_MAX)
        return Duration(micros * 1_000)

    @staticmethod
    def from_secs_f64(secs: float) -> Duration:
        """Create a duration from fractional seconds, rounded to the nearest nanosecond."""
        secs = float(secs)
        _check_float_seconds(secs)
        return Duration(_nanos_from_seconds(Fraction(secs)))

    @staticmethod
    def from_secs_f32(secs: float) -> Duration:
        """Like :meth:`from_secs_f64`, after narrowing ``secs`` to single precision."""
        secs = float(secs)
        _check_float_seconds(secs)
        (narrowed,) = struct.unpack("f", struct.pack("f", secs))
        return Duration(_nanos_from_seconds(Fraction(narrowed)))

    def to_timedelta(self) -> timedelta:
        """Convert to a :class:`datetime.timedelta` (microsecond resolution)."""
        return timedelta(microseconds=self.nanos // 1_000)

    def __add__(self, other: object) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.nanos + other.nanos)

    def __sub__(self, other: object) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.nanos - other.nanos)

    def __await__(self):
        """Sleep for this long and return the instant of waking."""
        return sleep(self).__await__()


@dataclass(frozen=True, order=True)
class Instant:
    """A reading of the monotonic clock in nanoseconds."""

    nanos: int

    def __post_init__(self) -> None:
        _check_non_negative_int(self.nanos, "instant in nanoseconds", _U64_MAX)

    @staticmethod
    def now() -> Instant:
        return Instant(time.monotonic_ns())

    def duration_since(self, earlier: Instant) -> Duration:
        """Time from ``earlier`` to this instant, or zero if ``earlier`` is later."""
        return Duration(max(0, self.nanos - earlier.nanos))

    def elapsed(self) -> Duration:
        return Instant.now().duration_since(self)

    def __add__(self, other: object) -> Instant:
        if not isinstance(other, Duration):
            return NotImplemented
        return Instant(self.nanos + other.nanos)

    def __sub__(self, other: object) -> Instant:
        if not isinstance(other, Duration):
            return NotImplemented
        return Instant(self.nanos - other.nanos)

    def __await__(self):
        """Sleep until this instant and return the instant of waking."""
        return sleep_until(self).__await__()


@dataclass(frozen=True)
class SystemTime:
    """A reading of the wall clock, as seconds and nanoseconds since the epoch."""

    seconds: int
    nanoseconds: int

    @staticmethod
    def now() -> SystemTime:
        seconds, nanoseconds = divmod(time.time_ns(), _NANOS_PER_SEC)
        return SystemTime(seconds, nanoseconds)


class _Never:
    """An awaitable that never completes."""

    def __await__(self):
        while True:
            yield


class Timer:
    """Completes at a deadline, or never when it has none."""

    def __init__(self, deadline: Optional[Instant]) -> None:
        self.deadline = deadline

    def __repr__(self) -> str:
        return f"Timer(deadline={self.deadline!r})"

    @staticmethod
    def never() -> Timer:
        return Timer(None)

    @staticmethod
    def at(deadline: Instant) -> Timer:
        return Timer(deadline)

    @staticmethod
    def after(duration: Duration) -> Timer:
        return Timer(Instant.now() + duration)

    def set_after(self, duration: Duration) -> None:
        """Move the deadline to ``duration`` from now."""
        self.deadline = Instant.now() + duration

    async def wait(self) -> None:
        """Suspend until the deadline is reached."""
        if self.deadline is None:
            await _Never()
        else:
            await Reactor.current().wait_for(TimerPollable(self.deadline.nanos))

    def __await__(self):
        yield from self.wait().__await__()
        return Instant.now()


class Interval:
    """An endless async iterator that yields an instant every ``duration``."""

    def __init__(self, duration: Duration) -> None:
        self.duration = duration

    def __repr__(self) -> str:
        return f"Interval(duration={self.duration!r})"

    def __aiter__(self) -> Interval:
        return self

    async def __anext__(self) -> Instant:
        await Timer.after(self.duration)
        return Instant.now()


def interval(duration: Duration) -> Interval:
    """Create an async iterator ticking every ``duration``."""
    return Interval(duration)


class Sleep:
    """Completes once its duration, counted from creation, has passed."""

    def __init__(self, duration: Duration) -> None:
        self.duration = duration
        self._timer = Timer.after(duration)
        self._completed = False

    def __repr__(self) -> str:
        return f"Sleep(duration={self.duration!r})"

    def __await__(self):
        if self._completed:
            raise RuntimeError("future polled after completing")
        instant = yield from self._timer.__await__()
        self._completed = True
        return instant


def sleep(duration: Duration) -> Sleep:
    """Sleep for ``duration``; awaiting the result returns the instant of waking."""
    return Sleep(duration)


class SleepUntil:
    """Completes once the monotonic clock reaches its deadline."""

    def __init__(self, deadline: Instant) -> None:
        self.deadline = deadline
        self._timer = Timer.at(deadline)
        self._completed = False

    def __repr__(self) -> str:
        return f"SleepUntil(deadline={self.deadline!r})"

    def __await__(self):
        if self._completed:
            raise RuntimeError("future polled after completing")
        instant = yield from self._timer.__await__()
        self._completed = True
        return instant


def sleep_until(deadline: Instant) -> SleepUntil:
    """Sleep until ``deadline``; awaiting the result returns the instant of waking."""
    return SleepUntil(deadline)