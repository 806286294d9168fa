"""Tests for the per-key rate limiter.

These tests verify:
1. The daily ceiling and its calendar-date rollover
2. Frequency throttling with growing backoff
3. The fixed-window burst limit
4. Usage accounting and reporting
"""

import asyncio
import logging

import pytest

from aladin_mcp.errors import ErrorKind, StandardError
from aladin_mcp.rate_limiter import RateLimiter

KEY = "ttbtest1234567001"


def record_spaced(limiter: RateLimiter, clock, count: int, gap: float = 2.0) -> None:
    """Record calls far enough apart that throttling never kicks in."""
    for _ in range(count):
        limiter.record_call(KEY, success=True, latency_ms=100.0)
        clock.advance(gap)


# =============================================================================
# DAILY LIMIT
# =============================================================================


class TestDailyLimit:
    @pytest.mark.asyncio
    async def test_blocks_at_limit(self, clock, fake_sleep):
        limiter = RateLimiter(daily_limit=3, clock=clock, sleep=fake_sleep)
        record_spaced(limiter, clock, 3)

        with pytest.raises(StandardError) as exc_info:
            await limiter.check_before_call(KEY)

        error = exc_info.value
        assert error.kind is ErrorKind.DAILY_LIMIT_EXCEEDED
        assert error.retryable is False
        assert error.details == {"used": 3, "limit": 3}

    @pytest.mark.asyncio
    async def test_below_limit_passes(self, clock, fake_sleep):
        limiter = RateLimiter(daily_limit=3, clock=clock, sleep=fake_sleep)
        record_spaced(limiter, clock, 2)
        await limiter.check_before_call(KEY)

    @pytest.mark.asyncio
    async def test_counter_resets_lazily_on_new_date(self, clock, fake_sleep):
        limiter = RateLimiter(daily_limit=3, clock=clock, sleep=fake_sleep)
        record_spaced(limiter, clock, 3)

        # 12:00 -> 01:00 the next day
        clock.advance(13 * 3600)
        await limiter.check_before_call(KEY)

        stats = limiter.get_usage_stats(KEY)
        assert stats["daily_count"] == 0
        assert stats["reset_date"] == "2026-03-15"

    def test_reset_expired_days_counts_rolled_keys(self, rate_limiter, clock):
        rate_limiter.record_call(KEY)
        rate_limiter.record_call("ttbother0001")
        assert rate_limiter.reset_expired_days() == 0

        clock.advance(24 * 3600)
        assert rate_limiter.reset_expired_days() == 2
        assert rate_limiter.get_global_usage_stats()["daily_count"] == 0

    def test_seconds_until_midnight(self, rate_limiter):
        assert rate_limiter.seconds_until_midnight() == pytest.approx(12 * 3600)

    @pytest.mark.asyncio
    async def test_midnight_task_resets_counters(self, clock):
        calls: list[float] = []

        async def sleep_once(seconds: float) -> None:
            if calls:
                raise asyncio.CancelledError
            calls.append(seconds)
            clock.advance(seconds)

        limiter = RateLimiter(clock=clock, sleep=sleep_once)
        limiter.record_call(KEY)

        with pytest.raises(asyncio.CancelledError):
            await limiter.run_daily_reset()

        assert calls == [pytest.approx(12 * 3600 + 1)]
        assert limiter.get_usage_stats(KEY)["daily_count"] == 0

    @pytest.mark.asyncio
    async def test_start_and_stop_daily_reset(self):
        limiter = RateLimiter()
        task = limiter.start_daily_reset()
        assert limiter.start_daily_reset() is task

        await limiter.stop_daily_reset()
        assert task.cancelled()
        # Stopping twice is harmless
        await limiter.stop_daily_reset()


# =============================================================================
# THROTTLING
# =============================================================================


class TestThrottle:
    @pytest.mark.asyncio
    async def test_delay_grows_while_calls_stay_frequent(self, rate_limiter, fake_sleep):
        for _ in range(5):
            rate_limiter.record_call(KEY)

        await rate_limiter.check_before_call(KEY)
        await rate_limiter.check_before_call(KEY)

        assert fake_sleep.delays == [pytest.approx(0.3), pytest.approx(0.45)]
        assert rate_limiter.get_metrics(KEY)["is_throttled"] is False

    @pytest.mark.asyncio
    async def test_no_delay_under_threshold(self, rate_limiter, fake_sleep):
        for _ in range(4):
            rate_limiter.record_call(KEY)
        await rate_limiter.check_before_call(KEY)
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_concurrent_call_during_backoff_is_rate_limited(self, clock):
        gate = asyncio.Event()

        async def held_sleep(seconds: float) -> None:
            await gate.wait()

        limiter = RateLimiter(clock=clock, sleep=held_sleep)
        for _ in range(5):
            limiter.record_call(KEY)

        first = asyncio.create_task(limiter.check_before_call(KEY))
        await asyncio.sleep(0)

        with pytest.raises(StandardError) as exc_info:
            await limiter.check_before_call(KEY)
        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert exc_info.value.details["retry_after"] == pytest.approx(0.3)

        gate.set()
        await first


class TestBurst:
    @pytest.mark.asyncio
    async def test_eleventh_call_in_window_rejected(self, rate_limiter, clock):
        for _ in range(10):
            await rate_limiter.check_before_call(KEY)

        with pytest.raises(StandardError) as exc_info:
            await rate_limiter.check_before_call(KEY)
        assert exc_info.value.kind is ErrorKind.BURST_LIMIT_EXCEEDED

        clock.advance(2)
        await rate_limiter.check_before_call(KEY)


# =============================================================================
# ACCOUNTING
# =============================================================================


class TestAccounting:
    def test_success_and_failure_counts(self, rate_limiter, clock):
        rate_limiter.record_call(KEY, success=True, latency_ms=100.0)
        rate_limiter.record_call(KEY, success=False, latency_ms=300.0)
        rate_limiter.record_call(KEY, success=True)

        metrics = rate_limiter.get_metrics(KEY)
        assert metrics["total_requests"] == 3
        assert metrics["successful_requests"] == 2
        assert metrics["failed_requests"] == 1
        assert metrics["average_response_time_ms"] == pytest.approx(200.0)
        assert metrics["requests_last_minute"] == 3

        clock.advance(61)
        assert rate_limiter.get_metrics(KEY)["requests_last_minute"] == 0

    def test_usage_stats(self, rate_limiter):
        rate_limiter.record_call(KEY)
        stats = rate_limiter.get_usage_stats(KEY)
        assert stats["daily_count"] == 1
        assert stats["remaining"] == 4999
        assert stats["usage_percentage"] == pytest.approx(0.02)
        assert stats["last_call_at"].startswith("2026-03-14T12:00")

    def test_all_usage_stats_masks_keys(self, rate_limiter):
        rate_limiter.record_call(KEY)
        assert list(rate_limiter.get_all_usage_stats()) == ["ttbtes***"]

    def test_threshold_logging(self, clock, fake_sleep, caplog):
        limiter = RateLimiter(daily_limit=10, clock=clock, sleep=fake_sleep)
        with caplog.at_level(logging.WARNING, logger="aladin_mcp.rate_limiter"):
            record_spaced(limiter, clock, 9)

        levels = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert any(level == logging.WARNING and "80%" in msg for level, msg in levels)
        assert any(level == logging.ERROR and "90%" in msg for level, msg in levels)

    def test_reset_stats(self, rate_limiter):
        rate_limiter.record_call(KEY)
        rate_limiter.record_call("ttbother0001")
        rate_limiter.reset_stats(KEY)
        assert rate_limiter.get_usage_stats(KEY)["daily_count"] == 0
        assert rate_limiter.get_usage_stats("ttbother0001")["daily_count"] == 1

        rate_limiter.reset_stats()
        assert rate_limiter.get_global_usage_stats()["keys"] == 0
