"""Combinators that delay an awaitable or bound it with a deadline."""

from __future__ import annotations

import enum
import inspect
from collections.abc import Awaitable
from typing import Any

from minirt.clock import Duration, Instant, sleep, sleep_until, timeout_err


def _into_future(deadline: Any) -> Awaitable[Any]:
    if isinstance(deadline, Duration):
        return sleep(deadline)
    if isinstance(deadline, Instant):
        return sleep_until(deadline)
    if not inspect.isawaitable(deadline):
        raise TypeError(f"deadline {deadline!r} is not awaitable")
    return deadline


def _check_awaitable(future: Any) -> Awaitable[Any]:
    if not inspect.isawaitable(future):
        raise TypeError(f"object {future!r} is not awaitable")
    return future


def _discard(awaitable: Any) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()


class _State(enum.Enum):
    STARTED = enum.auto()
    COMPLETED = enum.auto()


class Delay:
    """Awaits ``deadline`` first, and only then awaits ``future``.

    A :class:`Duration` or :class:`Instant` deadline starts counting when the
    delay is created.
    """

    def __init__(self, future: Awaitable[Any], deadline: Any) -> None:
        self._future = _check_awaitable(future)
        self._deadline = _into_future(deadline)
        self._state = _State.STARTED

    def __repr__(self) -> str:
        return f"Delay(future={self._future!r}, deadline={self._deadline!r})"

    def __await__(self):
        if self._state is _State.COMPLETED:
            raise RuntimeError("future polled after completing")
        try:
            yield from self._deadline.__await__()
            value = yield from self._future.__await__()
        finally:
            _discard(self._deadline)
            _discard(self._future)
        self._state = _State.COMPLETED
        return value


class Timeout:
    """Awaits ``future`` unless ``deadline`` completes first.

    On each turn the future is checked before the deadline. When the deadline
    wins, the future is cancelled and :class:`TimeoutError` is raised.
    """

    def __init__(self, future: Awaitable[Any], deadline: Any) -> None:
        self._future = _check_awaitable(future)
        self._deadline = _into_future(deadline)
        self._completed = False

    def __repr__(self) -> str:
        return f"Timeout(future={self._future!r}, deadline={self._deadline!r})"

    def __await__(self):
        if self._completed:
            raise RuntimeError("future polled after completing")
        future_steps = self._future.__await__()
        deadline_steps = self._deadline.__await__()
        try:
            while True:
                try:
                    future_steps.send(None)
                except StopIteration as stop:
                    self._completed = True
                    return stop.value
                try:
                    deadline_steps.send(None)
                except StopIteration:
                    self._completed = True
                    raise timeout_err("future timed out") from None
                yield
        finally:
            for steps in (future_steps, deadline_steps):
                close = getattr(steps, "close", None)
                if close is not None:
                    close()


def delay(future: Awaitable[Any], deadline: Any) -> Delay:
    """Hold back ``future`` until ``deadline`` (a duration, an instant or any awaitable)."""
    return Delay(future, deadline)


def timeout(future: Awaitable[Any], deadline: Any) -> Timeout:
    """Fail with :class:`TimeoutError` if ``future`` does not finish before ``deadline``."""
    return Timeout(future, deadline)