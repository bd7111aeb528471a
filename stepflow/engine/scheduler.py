"""Deferred-resumption schedulers.

A scheduler runs a resumption only after the current call stack has
unwound, in FIFO order. Every entry into a runner (start, handle
invocation, deferred resumption) goes through ``enter`` so the
trampoline knows when the outermost frame returns.
"""
from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Protocol

from returns.io import IOFailure
from returns.unsafe import unsafe_perform_io

from stepflow import io_ops
from stepflow.errors import SchedulerError

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from stepflow.types import DeferMode


class Scheduler(Protocol):
    def enter(self, callback: Callable[[], None]) -> None: ...

    def schedule(self, callback: Callable[[], None]) -> None: ...


class LoopScheduler:
    """Post resumptions to an asyncio event loop with call_soon."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def enter(self, callback: Callable[[], None]) -> None:
        callback()

    def schedule(self, callback: Callable[[], None]) -> None:
        self._loop.call_soon(callback)


class TrampolineScheduler:
    """Queue resumptions and drain them when the outermost entry returns.

    Used when no event loop is running. Queued callbacks run one at a
    time at depth zero, so a step body never sees a later step start
    inside it and the stack does not grow with the number of steps.
    """

    def __init__(self) -> None:
        self._queue: deque[Callable[[], None]] = deque()
        self._depth = 0
        self._draining = False

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enter(self, callback: Callable[[], None]) -> None:
        self._call(callback)
        if self._depth == 0 and not self._draining:
            self._drain()

    def schedule(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def _call(self, callback: Callable[[], None]) -> None:
        self._depth += 1
        try:
            callback()
        finally:
            self._depth -= 1

    def _drain(self) -> None:
        self._draining = True
        try:
            while self._queue:
                self._call(self._queue.popleft())
        finally:
            self._draining = False


def make_scheduler(defer_mode: DeferMode) -> Scheduler:
    """Build the scheduler for one run.

    Raises:
        SchedulerError: defer_mode is "loop" and no loop is running.
    """
    if defer_mode == "trampoline":
        return TrampolineScheduler()

    loop_result = io_ops.get_running_loop()
    if isinstance(loop_result, IOFailure):
        if defer_mode == "loop":
            error = unsafe_perform_io(loop_result.failure())
            raise SchedulerError(error)
        return TrampolineScheduler()

    return LoopScheduler(unsafe_perform_io(loop_result.unwrap()))
