"""Single-assignment result cell with completion reactions."""

import asyncio
import collections
import enum
import logging
import threading
from collections.abc import Callable, Generator
from typing import Any, cast

from .errors import AsyncValueError, CancelledFailure, ComputationFailure

type Reaction[T] = Callable[[AsyncValue[T]], object]

logger = logging.getLogger(__name__)


class State(enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AsyncValue[T]:
    """A value that becomes available at some point in the future.

    Starts in PENDING state and is resolved at most once, either to a value
    (SUCCEEDED) or to an AsyncValueError (FAILED). The first resolution wins;
    later resolve_success/resolve_failure calls are no-ops that return False.
    Resolution is guarded by a lock, so concurrent resolvers from different
    threads never produce a torn or double-applied result.

    Waiting is expressed with reactions, not polling. A reaction is called with
    the resolved AsyncValue itself (same convention as Future.add_done_callback)
    and reads the outcome through result() or exception().

    Example:
        value: AsyncValue[int] = AsyncValue()
        value.on_complete(lambda v: print(v.result()))
        value.resolve_success(42)  # prints 42
        value.resolve_failure(ValueError("late"))  # no-op, returns False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = State.PENDING
        self._value: T | None = None
        self._error: AsyncValueError | None = None
        self._reactions: list[Reaction[T]] = []

    @classmethod
    def pending(cls) -> "AsyncValue[Any]":
        """Create a new AsyncValue in PENDING state."""
        return cls()

    @classmethod
    def succeeded[V](cls, value: V) -> "AsyncValue[V]":
        """Create an AsyncValue that is already resolved to a value."""
        result: AsyncValue[V] = cls()
        result.resolve_success(value)
        return result

    @classmethod
    def failed(cls, error: Exception) -> "AsyncValue[Any]":
        """Create an AsyncValue that is already resolved to a failure."""
        result: AsyncValue[Any] = cls()
        result.resolve_failure(error)
        return result

    @property
    def state(self) -> State:
        return self._state

    def is_pending(self) -> bool:
        return self._state is State.PENDING

    def is_succeeded(self) -> bool:
        return self._state is State.SUCCEEDED

    def is_failed(self) -> bool:
        return self._state is State.FAILED

    def resolve_success(self, value: T) -> bool:
        """Resolve to a value. Returns False if already resolved."""
        return self._resolve(State.SUCCEEDED, value, None)

    def resolve_failure(self, error: Exception) -> bool:
        """Resolve to a failure. Returns False if already resolved.

        AsyncValueError instances are stored as is, any other exception is
        wrapped into ComputationFailure with the original kept as its cause.
        """
        if not isinstance(error, AsyncValueError):
            error = ComputationFailure(error)
        return self._resolve(State.FAILED, None, error)

    def cancel(self) -> bool:
        """Resolve to CancelledFailure. Returns False if already resolved."""
        return self.resolve_failure(CancelledFailure())

    def on_complete(self, reaction: Reaction[T]) -> None:
        """Register a reaction to run exactly once, when the value is resolved.

        Reactions registered while pending run on the resolving thread, in
        registration order. If the value is already resolved, the reaction runs
        on the calling thread: immediately, or, when called from inside another
        reaction, right after the reactions already queued on that thread.
        """
        with self._lock:
            if self._state is State.PENDING:
                self._reactions.append(reaction)
                return
        _dispatch(self, [reaction])

    def remove_reaction(self, reaction: Reaction[T]) -> bool:
        """Unregister a reaction that has not run yet.

        Returns True if the reaction was registered and is now removed, False if
        it was never registered or the value is already resolved.
        """
        with self._lock:
            try:
                self._reactions.remove(reaction)
            except ValueError:
                return False
            return True

    def exception(self) -> AsyncValueError | None:
        """Return the stored error, or None if the value succeeded.

        Raises:
            RuntimeError: If the value is still pending
        """
        if self._state is State.PENDING:
            raise RuntimeError("AsyncValue is still pending")
        return self._error

    def result(self, timeout: float | None = None) -> T:
        """Block until resolved and return the value.

        Intended for callers at the edge of a pipeline (scripts, tests). Inside
        the pipeline use on_complete() or await instead.

        Args:
            timeout: Maximum time to wait in seconds, None waits forever

        Raises:
            AsyncValueError: The stored error, if the value failed
            TimeoutError: If the value did not resolve within timeout
        """
        if not self._done.wait(timeout):
            raise TimeoutError(f"AsyncValue did not resolve within {timeout} seconds")
        if self._error is not None:
            raise self._error
        return cast(T, self._value)

    def __await__(self) -> Generator[Any, None, T]:
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()

        def _wake(_: AsyncValue[T]) -> None:
            loop.call_soon_threadsafe(_settle)

        def _settle() -> None:
            if not waiter.done():
                waiter.set_result(None)

        self.on_complete(_wake)
        try:
            yield from waiter.__await__()
        finally:
            self.remove_reaction(_wake)
        return self.result()

    def __repr__(self) -> str:
        if self._state is State.SUCCEEDED:
            return f"<AsyncValue succeeded value={self._value!r}>"
        if self._state is State.FAILED:
            return f"<AsyncValue failed error={self._error!r}>"
        return "<AsyncValue pending>"

    def _resolve(self, state: State, value: T | None, error: AsyncValueError | None) -> bool:
        with self._lock:
            if self._state is not State.PENDING:
                return False
            self._value = value
            self._error = error
            self._state = state
            reactions = self._reactions
            self._reactions = []
            self._done.set()

        _dispatch(self, reactions)
        return True

    def _run_reaction(self, reaction: Reaction[T]) -> None:
        try:
            reaction(self)
        except Exception:
            logger.exception("Completion reaction raised an exception", extra={"async_value": repr(self)})


_dispatch_state = threading.local()


def _dispatch[T](value: AsyncValue[T], reactions: list[Reaction[T]]) -> None:
    """Run reactions through a per-thread queue.

    Only the outermost call on a thread drains the queue; nested calls from
    inside a reaction just enqueue. Resolving a long chain of values therefore
    runs in constant stack depth.
    """
    queue: collections.deque[tuple[AsyncValue[Any], Reaction[Any]]] | None = getattr(_dispatch_state, "queue", None)
    if queue is not None:
        queue.extend((value, reaction) for reaction in reactions)
        return

    queue = collections.deque((value, reaction) for reaction in reactions)
    _dispatch_state.queue = queue
    try:
        while queue:
            owner, reaction = queue.popleft()
            owner._run_reaction(reaction)  # noqa: SLF001
    finally:
        _dispatch_state.queue = None
