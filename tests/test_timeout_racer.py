"""Tests for TimeoutRacer."""

import asyncio
import logging
import time

import pytest
from fakes import ImmediateScheduler, ManualScheduler

from mm_async_value import (
    AsyncioScheduler,
    AsyncValue,
    BackgroundExecutor,
    ComputationFailure,
    ThreadingScheduler,
    TimeoutFailure,
    TimeoutRacer,
    combine,
)


class TestWithTimeout:
    """Deterministic tests for with_timeout using a manual clock."""

    def test_source_arrives_in_time(self) -> None:
        """Test that 42 at 100ms with a 1000ms bound resolves to 42."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_timeout(source, 1.0)

        scheduler.advance(0.1)
        source.resolve_success(42)

        assert result.result() == 42
        assert scheduler.pending == []

    def test_timer_fires_first(self) -> None:
        """Test that 42 at 1000ms with a 100ms bound resolves to TimeoutFailure."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_timeout(source, 0.1)

        scheduler.advance(0.1)
        assert result.is_failed()

        scheduler.advance(0.9)
        source.resolve_success(42)

        error = result.exception()
        assert isinstance(error, TimeoutFailure)
        assert isinstance(error, TimeoutError)
        assert error.seconds == 0.1

    def test_source_at_exact_bound_times_out(self) -> None:
        """Test that a source resolving at the bound loses to the timer."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_timeout(source, 0.5)

        scheduler.advance(0.5)
        source.resolve_success(42)

        assert isinstance(result.exception(), TimeoutFailure)

    def test_source_failure_copies_through(self) -> None:
        """Test that 'network-error' at 50ms with a 1000ms bound is a ComputationFailure."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_timeout(source, 1.0)

        scheduler.advance(0.05)
        source.resolve_failure(ConnectionError("network-error"))

        error = result.exception()
        assert isinstance(error, ComputationFailure)
        assert str(error) == "network-error"
        assert isinstance(error.cause, ConnectionError)
        assert scheduler.pending == []

    def test_already_resolved_source(self) -> None:
        """Test that a terminal source resolves the result and cancels the timer at once."""
        scheduler = ManualScheduler()

        result = TimeoutRacer(scheduler).with_timeout(AsyncValue.succeeded("ready"), 1.0)

        assert result.result() == "ready"
        assert scheduler.pending == []

    def test_repeated_timeouts_release_source(self) -> None:
        """Test that racing one never-resolving source many times leaves no reactions on it."""
        scheduler = ManualScheduler()
        racer = TimeoutRacer(scheduler)
        source: AsyncValue[int] = AsyncValue()

        results = [racer.with_timeout(source, 0.1) for _ in range(1000)]
        assert len(source._reactions) == 1000

        scheduler.advance(0.1)

        assert all(isinstance(result.exception(), TimeoutFailure) for result in results)
        assert source._reactions == []

    def test_default_timeout_releases_source(self) -> None:
        """Test that a default substitution also unregisters from the source."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()

        result = TimeoutRacer(scheduler).with_default_on_timeout(source, 0.1, 7)
        scheduler.advance(0.1)

        assert result.result() == 7
        assert source._reactions == []

    def test_timer_firing_before_registration(self) -> None:
        """Test that a timer firing inside schedule() still leaves the source clean."""
        scheduler = ImmediateScheduler()
        source: AsyncValue[int] = AsyncValue()

        result = TimeoutRacer(scheduler).with_timeout(source, 0.1)

        assert scheduler.fired == 1
        assert isinstance(result.exception(), TimeoutFailure)
        assert source._reactions == []
        source.resolve_success(42)
        assert isinstance(result.exception(), TimeoutFailure)

    def test_timeout_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a timer win is logged at debug level."""
        scheduler = ManualScheduler()
        TimeoutRacer(scheduler).with_timeout(AsyncValue(), 0.2)

        with caplog.at_level(logging.DEBUG, logger="mm_async_value.timeout_racer"):
            scheduler.advance(0.2)

        assert "timed out after 0.2 seconds" in caplog.text

    @pytest.mark.parametrize("seconds", [0, -1.0])
    def test_invalid_timeout(self, seconds: float) -> None:
        """Test that non-positive timeouts raise ValueError."""
        racer = TimeoutRacer(ManualScheduler())

        with pytest.raises(ValueError, match="Timeout must be positive"):
            racer.with_timeout(AsyncValue(), seconds)


class TestWithDefaultOnTimeout:
    """Deterministic tests for with_default_on_timeout."""

    def test_default_substituted(self) -> None:
        """Test that 42 at 1000ms with a 100ms bound and default 7 resolves to 7."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_default_on_timeout(source, 0.1, 7)

        scheduler.advance(0.1)
        scheduler.advance(0.9)
        source.resolve_success(42)

        assert result.result() == 7

    def test_source_in_time_ignores_default(self) -> None:
        """Test that an in-time source result is used instead of the default."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_default_on_timeout(source, 1.0, 7)

        scheduler.advance(0.1)
        source.resolve_success(42)
        scheduler.advance(2.0)

        assert result.result() == 42

    def test_source_failure_still_reported(self) -> None:
        """Test that source failures are not replaced by the default."""
        scheduler = ManualScheduler()
        source: AsyncValue[int] = AsyncValue()
        result = TimeoutRacer(scheduler).with_default_on_timeout(source, 1.0, 7)

        source.resolve_failure(ConnectionError("network-error"))

        assert isinstance(result.exception(), ComputationFailure)

    def test_invalid_timeout(self) -> None:
        """Test that zero timeout raises ValueError."""
        with pytest.raises(ValueError, match="Timeout must be positive"):
            TimeoutRacer(ManualScheduler()).with_default_on_timeout(AsyncValue(), 0, 7)


class TestRealSchedulers:
    """End-to-end tests with real timers and worker threads."""

    def test_pipeline_within_bound(self) -> None:
        """Test combine followed by with_timeout on background computations."""

        def delayed(value: int, delay: float) -> int:
            time.sleep(delay)
            return value

        racer = TimeoutRacer(ThreadingScheduler())
        with BackgroundExecutor(max_workers=2) as executor:
            price = executor.submit(delayed, 20, 0.05)
            quantity = executor.submit(delayed, 3, 0.1)
            total = racer.with_timeout(combine(price, quantity, lambda p, q: p * q), 1.0)

            assert total.result(timeout=2.0) == 60

    def test_pipeline_exceeds_bound(self) -> None:
        """Test that a slow computation times out without blocking the caller."""
        racer = TimeoutRacer(ThreadingScheduler())
        with BackgroundExecutor(max_workers=1) as executor:
            slow = executor.submit(time.sleep, 0.5)

            start_time = time.time()
            result = racer.with_timeout(slow, 0.1)
            assert time.time() - start_time < 0.05  # returns immediately

            with pytest.raises(TimeoutFailure):
                result.result(timeout=2.0)
            elapsed = time.time() - start_time
            assert 0.05 < elapsed < 0.4

    def test_default_with_threading_scheduler(self) -> None:
        """Test with_default_on_timeout with a real timer."""
        racer = TimeoutRacer(ThreadingScheduler())

        result = racer.with_default_on_timeout(AsyncValue(), 0.05, "fallback")

        assert result.result(timeout=1.0) == "fallback"

    async def test_asyncio_scheduler(self) -> None:
        """Test racing on an asyncio loop with await."""
        loop = asyncio.get_running_loop()
        racer = TimeoutRacer(AsyncioScheduler(loop))
        fast: AsyncValue[str] = AsyncValue()
        slow: AsyncValue[str] = AsyncValue()
        loop.call_later(0.05, fast.resolve_success, "fast")
        loop.call_later(0.5, slow.resolve_success, "slow")

        assert await racer.with_timeout(fast, 0.3) == "fast"
        with pytest.raises(TimeoutFailure):
            await racer.with_timeout(slow, 0.1)
        assert await racer.with_default_on_timeout(slow, 0.1, "default") == "default"
