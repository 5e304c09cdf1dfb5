"""Bound how long an async value may stay pending."""

import logging
from collections.abc import Callable

from .async_value import AsyncValue
from .errors import TimeoutFailure
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class TimeoutRacer:
    """Race async values against a timer.

    The returned value is resolved by whichever comes first: the source
    resolving (success or failure copies through) or the timer firing. The
    loser is discarded. When the source wins, the timer is cancelled. When the
    timer wins, the racer's reaction is removed from the source; the source
    computation keeps running and its late result is ignored.

    Example:
        racer = TimeoutRacer(ThreadingScheduler())
        bounded = racer.with_timeout(executor.submit(fetch_quote), 2.0)
        bounded.on_complete(handle_quote)

        # Fall back to a cached quote instead of failing
        quote = racer.with_default_on_timeout(executor.submit(fetch_quote), 2.0, cached_quote)
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler

    def with_timeout[T](self, source: AsyncValue[T], seconds: float) -> AsyncValue[T]:
        """Resolve to the source result, or to TimeoutFailure after seconds.

        Args:
            source: Async value to bound
            seconds: Timeout duration in seconds

        Raises:
            ValueError: If seconds is not positive
        """

        def _on_timer(result: AsyncValue[T]) -> None:
            if result.resolve_failure(TimeoutFailure(seconds)):
                logger.debug("Async value timed out after %s seconds", seconds)

        return self._race(source, seconds, _on_timer)

    def with_default_on_timeout[T](self, source: AsyncValue[T], seconds: float, default: T) -> AsyncValue[T]:
        """Resolve to the source result, or to default after seconds.

        Never reports a timeout failure; source failures still copy through.

        Args:
            source: Async value to bound
            seconds: Timeout duration in seconds
            default: Value substituted when the timer wins

        Raises:
            ValueError: If seconds is not positive
        """

        def _on_timer(result: AsyncValue[T]) -> None:
            if result.resolve_success(default):
                logger.debug("Async value timed out after %s seconds, using default", seconds)

        return self._race(source, seconds, _on_timer)

    def _race[T](self, source: AsyncValue[T], seconds: float, on_timer: Callable[[AsyncValue[T]], None]) -> AsyncValue[T]:
        if seconds <= 0:
            raise ValueError("Timeout must be positive")

        result: AsyncValue[T] = AsyncValue()

        def _on_source(value: AsyncValue[T]) -> None:
            error = value.exception()
            if error is not None:
                result.resolve_failure(error)
            else:
                result.resolve_success(value.result())
            timer.cancel()

        def _on_deadline() -> None:
            source.remove_reaction(_on_source)
            on_timer(result)

        timer = self.scheduler.schedule(seconds, _on_deadline)
        source.on_complete(_on_source)
        if not result.is_pending():
            # timer may fire on its own thread before the reaction was registered
            source.remove_reaction(_on_source)
        return result
