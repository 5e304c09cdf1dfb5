"""Combinators that build new async values from existing ones."""

import threading
from collections.abc import Callable

from .async_value import AsyncValue


def combine[A, B, C](a: AsyncValue[A], b: AsyncValue[B], fn: Callable[[A, B], C]) -> AsyncValue[C]:
    """Join two independent async values with a binary function.

    The returned value resolves to fn(a_value, b_value) once both inputs have
    succeeded. If either input fails, it resolves to whichever error arrives
    first. An exception raised by fn itself is captured as ComputationFailure.

    Args:
        a: First input
        b: Second input
        fn: Function applied to both results

    Returns:
        New AsyncValue with the combined result

    Example:
        price = executor.submit(fetch_price)
        rate = executor.submit(fetch_rate)
        total = combine(price, rate, lambda p, r: p * r)
    """
    result: AsyncValue[C] = AsyncValue()
    lock = threading.Lock()
    remaining = 2

    def _on_input(value: AsyncValue[A] | AsyncValue[B]) -> None:
        nonlocal remaining
        error = value.exception()
        if error is not None:
            result.resolve_failure(error)
            return

        with lock:
            remaining -= 1
            if remaining:
                return

        try:
            combined = fn(a.result(), b.result())
        except Exception as err:
            result.resolve_failure(err)
        else:
            result.resolve_success(combined)

    a.on_complete(_on_input)
    b.on_complete(_on_input)
    return result


def transform[T, U](source: AsyncValue[T], fn: Callable[[T], U]) -> AsyncValue[U]:
    """Map the result of an async value through fn.

    Failures of source copy through unchanged; an exception raised by fn is
    captured as ComputationFailure.
    """
    result: AsyncValue[U] = AsyncValue()

    def _on_source(value: AsyncValue[T]) -> None:
        error = value.exception()
        if error is not None:
            result.resolve_failure(error)
            return
        try:
            mapped = fn(value.result())
        except Exception as err:
            result.resolve_failure(err)
        else:
            result.resolve_success(mapped)

    source.on_complete(_on_source)
    return result
