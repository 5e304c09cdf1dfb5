"""Timer facilities for scheduling one-shot actions after a delay.

Provides:
- Scheduler / TimerHandle: protocols accepted by TimeoutRacer
- ThreadingScheduler: one daemon threading.Timer per action
- AsyncioScheduler: actions run on an asyncio event loop
"""

import asyncio
import itertools
import threading
from collections.abc import Callable
from typing import Protocol

type Action = Callable[[], object]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Cancel the action if it has not fired yet. Safe to call more than once."""


class Scheduler(Protocol):
    def schedule(self, seconds: float, action: Action) -> TimerHandle:
        """Run action once after seconds elapse, without blocking the caller."""


class ThreadingScheduler:
    """Scheduler backed by threading.Timer.

    Each scheduled action gets its own daemon timer thread, so a pending timer
    never keeps the interpreter alive. Cancelled timers exit without running
    the action.

    Example:
        scheduler = ThreadingScheduler()
        handle = scheduler.schedule(0.5, lambda: print("fired"))
        handle.cancel()  # nothing is printed
    """

    def __init__(self, thread_prefix: str = "async_value_timer") -> None:
        self.thread_prefix = thread_prefix
        self._counter = itertools.count(1)

    def schedule(self, seconds: float, action: Action) -> threading.Timer:
        timer = threading.Timer(seconds, action)
        timer.name = f"{self.thread_prefix}_{next(self._counter)}"
        timer.daemon = True
        timer.start()
        return timer


class _LoopTimer:
    """Timer handle for AsyncioScheduler, safe to cancel from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop, seconds: float, action: Action) -> None:
        self._loop = loop
        self._seconds = seconds
        self._action = action
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    def start(self) -> None:
        if not self._cancelled:
            self._handle = self._loop.call_later(self._seconds, self._action)

    def cancel(self) -> None:
        # call_soon_threadsafe keeps FIFO order, so start() always runs before this
        self._loop.call_soon_threadsafe(self._cancel_on_loop)

    def _cancel_on_loop(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()


class AsyncioScheduler:
    """Scheduler that runs actions on an asyncio event loop.

    Actions are scheduled with loop.call_later, so they run on the loop thread.
    schedule() and cancel() may be called from any thread.

    Example:
        scheduler = AsyncioScheduler(asyncio.get_running_loop())
        racer = TimeoutRacer(scheduler)
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def schedule(self, seconds: float, action: Action) -> _LoopTimer:
        timer = _LoopTimer(self.loop, seconds, action)
        self.loop.call_soon_threadsafe(timer.start)
        return timer
