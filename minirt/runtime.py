"""A single-threaded event loop that drives coroutines by polling readiness."""

from __future__ import annotations

import abc
import functools
import inspect
import selectors
import threading
import time
from collections.abc import Awaitable, Callable, Iterator
from typing import Any, TypeVar

T = TypeVar("T")

_SPIN_SECONDS = 0.001
_VALID_EVENTS = selectors.EVENT_READ | selectors.EVENT_WRITE

_state = threading.local()


class Pollable(abc.ABC):
    """Something whose readiness can be checked without blocking."""

    @abc.abstractmethod
    def ready(self) -> bool:
        """Return whether the awaited event has happened."""

    def _deadline_ns(self) -> int | None:
        return None

    def _io_interest(self) -> tuple[Any, int] | None:
        return None


class TimerPollable(Pollable):
    """Ready once the monotonic clock reaches ``deadline_ns``."""

    def __init__(self, deadline_ns: int) -> None:
        self.deadline_ns = deadline_ns

    def __repr__(self) -> str:
        return f"TimerPollable(deadline_ns={self.deadline_ns})"

    def ready(self) -> bool:
        return time.monotonic_ns() >= self.deadline_ns

    def _deadline_ns(self) -> int | None:
        return self.deadline_ns


class IoPollable(Pollable):
    """Ready once a file object can be read or written without blocking."""

    def __init__(self, fileobj: Any, events: int) -> None:
        if not events or events & ~_VALID_EVENTS:
            raise ValueError(f"invalid selector events: {events!r}")
        self.fileobj = fileobj
        self.events = events

    def __repr__(self) -> str:
        return f"IoPollable(fileobj={self.fileobj!r}, events={self.events})"

    def ready(self) -> bool:
        with selectors.DefaultSelector() as selector:
            selector.register(self.fileobj, self.events)
            return bool(selector.select(0))

    def _io_interest(self) -> tuple[Any, int] | None:
        return self.fileobj, self.events


class Poller:
    """A set of pollables under small integer keys, with blocking waits."""

    def __init__(self) -> None:
        self._slots: list[Pollable | None] = []
        self._vacant: list[int] = []

    def __len__(self) -> int:
        return len(self._slots) - len(self._vacant)

    def __iter__(self) -> Iterator[tuple[int, Pollable]]:
        return ((key, target) for key, target in enumerate(self._slots) if target is not None)

    def insert(self, target: Pollable) -> int:
        """Store ``target`` and return its key, reusing freed keys first."""
        if self._vacant:
            key = self._vacant.pop()
            self._slots[key] = target
        else:
            key = len(self._slots)
            self._slots.append(target)
        return key

    def get(self, key: int) -> Pollable | None:
        if 0 <= key < len(self._slots):
            return self._slots[key]
        return None

    def remove(self, key: int) -> Pollable | None:
        """Remove and return the target under ``key``, or None if there is none."""
        target = self.get(key)
        if target is not None:
            self._slots[key] = None
            self._vacant.append(key)
        return target

    def block_until(self) -> list[int]:
        """Block until at least one target is ready and return the ready keys."""
        targets = list(self)
        if not targets:
            raise RuntimeError(
                "attempting to block on an empty list of pollables: "
                "without pending work no progress can be made"
            )
        while True:
            ready = [key for key, target in targets if target.ready()]
            if ready:
                return ready
            self._wait([target for _, target in targets])

    @staticmethod
    def _wait(targets: list[Pollable]) -> None:
        deadlines = []
        interests: dict[Any, int] = {}
        spin = False
        for target in targets:
            deadline = target._deadline_ns()
            interest = target._io_interest()
            if deadline is not None:
                deadlines.append(deadline)
            if interest is not None:
                fileobj, events = interest
                interests[fileobj] = interests.get(fileobj, 0) | events
            if deadline is None and interest is None:
                spin = True

        timeout = None
        if deadlines:
            timeout = max(0.0, (min(deadlines) - time.monotonic_ns()) / 1e9)
        if spin:
            timeout = _SPIN_SECONDS if timeout is None else min(timeout, _SPIN_SECONDS)

        if interests:
            with selectors.DefaultSelector() as selector:
                for fileobj, events in interests.items():
                    selector.register(fileobj, events)
                selector.select(timeout)
        elif timeout is not None:
            time.sleep(timeout)


class _Pending:
    """Suspends the running coroutine for one turn of the event loop."""

    def __await__(self):
        yield


class Reactor:
    """Tracks the pollables that the running coroutine is waiting on."""

    def __init__(self) -> None:
        self.poller = Poller()
        self._wakers: dict[int, Callable[[], None]] = {}

    def __repr__(self) -> str:
        return f"Reactor(pending={len(self.poller)})"

    @staticmethod
    def current() -> Reactor:
        """Return the reactor of the running :func:`block_on` call."""
        reactor = getattr(_state, "reactor", None)
        if reactor is None:
            raise RuntimeError("Reactor.current must be called within a minirt runtime")
        return reactor

    def block_until(self) -> None:
        """Block until some pollables are ready and wake their waiters."""
        for key in self.poller.block_until():
            waker = self._wakers.get(key)
            if waker is None:
                raise RuntimeError(f"tried to wake the waker for non-existent key {key}")
            waker()

    async def wait_for(self, pollable: Pollable) -> None:
        """Suspend until ``pollable`` is ready."""
        woken = False

        def wake() -> None:
            nonlocal woken
            woken = True

        key = self.poller.insert(pollable)
        self._wakers[key] = wake
        try:
            ready = pollable.ready()
            while not ready:
                await _Pending()
                if woken:
                    woken = False
                    ready = pollable.ready()
        finally:
            self.poller.remove(key)
            self._wakers.pop(key, None)


def block_on(awaitable: Awaitable[T]) -> T:
    """Run ``awaitable`` to completion on a fresh reactor and return its result."""
    if getattr(_state, "reactor", None) is not None:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RuntimeError("cannot block_on inside an existing block_on")
    if not inspect.isawaitable(awaitable):
        raise TypeError(f"object {awaitable!r} is not awaitable")

    reactor = Reactor()
    _state.reactor = reactor
    steps = awaitable.__await__()
    try:
        while True:
            try:
                yielded = steps.send(None)
            except StopIteration as stop:
                return stop.value
            if yielded is not None:
                raise TypeError(f"cannot drive an awaitable that yields {yielded!r}")
            reactor.block_until()
    finally:
        close = getattr(steps, "close", None)
        if close is not None:
            close()
        _state.reactor = None


def _takes_arguments(func: Callable[..., Any]) -> bool:
    code = getattr(func, "__code__", None)
    if code is None:
        return False
    variadic = inspect.CO_VARARGS | inspect.CO_VARKEYWORDS
    return bool(code.co_argcount or code.co_kwonlyargcount or code.co_flags & variadic)


def entrypoint(func: Callable[[], Awaitable[T]]) -> Callable[[], T]:
    """Turn an argument-less async function into a plain function run by :func:`block_on`."""
    if not inspect.iscoroutinefunction(func):
        raise TypeError("function must be async")
    if _takes_arguments(func):
        raise TypeError("arguments to an entrypoint are not supported")

    @functools.wraps(func)
    def run() -> T:
        return block_on(func())

    return run