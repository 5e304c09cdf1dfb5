"""Run computations in the background and expose them as async values."""

import concurrent.futures
from collections.abc import Callable
from types import TracebackType
from typing import Any, Self

from .async_value import AsyncValue
from .errors import ComputationFailure


def from_future[T](future: concurrent.futures.Future[T]) -> AsyncValue[T]:
    """Adapt a concurrent.futures.Future to an AsyncValue.

    A cancelled future resolves to CancelledFailure, a raised exception to
    ComputationFailure with the exception as cause.
    """
    result: AsyncValue[T] = AsyncValue()

    def _on_done(done: concurrent.futures.Future[T]) -> None:
        if done.cancelled():
            result.cancel()
            return
        error = done.exception()
        if error is not None:
            result.resolve_failure(error if isinstance(error, Exception) else ComputationFailure(error))
        else:
            result.resolve_success(done.result())

    future.add_done_callback(_on_done)
    return result


def run_in[T](executor: concurrent.futures.Executor, func: Callable[..., T], *args: Any, **kwargs: Any) -> AsyncValue[T]:
    """Submit func to a caller-supplied executor and return its async value."""
    return from_future(executor.submit(func, *args, **kwargs))


class BackgroundExecutor:
    """Thread pool that returns async values instead of futures.

    Example:
        with BackgroundExecutor(max_workers=2) as executor:
            price = executor.submit(fetch_price, "BTC")
            rate = executor.submit(fetch_rate, "EUR")
            total = combine(price, rate, lambda p, r: p * r)
            print(total.result(timeout=5))
    """

    def __init__(self, max_workers: int = 5, thread_prefix: str = "async_value") -> None:
        """Initialize BackgroundExecutor.

        Args:
            max_workers: Maximum number of worker threads
            thread_prefix: Prefix for worker thread names

        Raises:
            ValueError: If max_workers is not positive
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.max_workers = max_workers
        self.thread_prefix = thread_prefix
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers, thread_name_prefix=thread_prefix)

    def submit[T](self, func: Callable[..., T], *args: Any, **kwargs: Any) -> AsyncValue[T]:
        """Run func(*args, **kwargs) on a worker thread.

        Raises:
            RuntimeError: If the executor has been shut down
        """
        return run_in(self._executor, func, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work. Pending computations still run to completion."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)
