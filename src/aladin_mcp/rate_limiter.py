"""Daily quota, request-frequency throttling and burst limiting per TTB key.

The Aladin Open API allows 5,000 calls per key per day. On top of that hard
ceiling this module smooths traffic: when five or more calls landed in the
last second the next call is delayed with a growing backoff, and more than
ten calls inside a fixed one-second window are rejected outright.

The daily counter resets when the local calendar date changes. That check
runs lazily on every call; ``run_daily_reset`` only triggers the same check
early at midnight so idle processes report fresh numbers.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from . import constants as c
from .errors import ErrorClassifier, default_classifier
from .observability.metrics import update_daily_usage

logger = logging.getLogger(__name__)


def _mask_key(ttb_key: str) -> str:
    return f"{ttb_key[:6]}***"


@dataclass
class ThrottleState:
    blocked_until: float | None = None
    consecutive_throttles: int = 0
    burst_count: int = 0
    burst_window_start: float = 0.0


@dataclass
class KeyUsage:
    """Usage counters for one TTB key."""

    daily_limit: int
    reset_date: date
    daily_count: int = 0
    last_call_at: float | None = None
    request_history: deque[float] = field(default_factory=deque)
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    timed_requests: int = 0
    throttle: ThrottleState = field(default_factory=ThrottleState)


class RateLimiter:
    """Per-key quota tracker and traffic shaper."""

    def __init__(
        self,
        daily_limit: int = c.DAILY_LIMIT,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        classifier: ErrorClassifier | None = None,
    ):
        self.daily_limit = daily_limit
        self._clock = clock
        self._sleep = sleep
        self._classifier = classifier or default_classifier
        self._usages: dict[str, KeyUsage] = {}
        self._reset_task: asyncio.Task | None = None

    # =========================================================================
    # GATING
    # =========================================================================

    async def check_before_call(self, ttb_key: str) -> None:
        """Admit a call or raise a ``StandardError``.

        Order: daily rollover, daily ceiling, active throttle, frequency
        backoff (awaited), burst window.
        """
        usage = self._usage(ttb_key)
        self._roll_over_if_new_day(ttb_key, usage)

        if usage.daily_count >= usage.daily_limit:
            raise self._classifier.daily_limit_exceeded(usage.daily_count, usage.daily_limit)

        await self._check_frequency(ttb_key, usage)
        self._check_burst(usage)

    async def _check_frequency(self, ttb_key: str, usage: KeyUsage) -> None:
        state = usage.throttle
        now = self._clock()

        if state.blocked_until is not None:
            if now < state.blocked_until:
                raise self._classifier.rate_limited(state.blocked_until - now)
            state.blocked_until = None

        recent = sum(1 for t in usage.request_history if now - t <= c.THROTTLE_WINDOW)
        if recent < c.THROTTLE_WINDOW_CALLS:
            state.consecutive_throttles = 0
            return

        state.consecutive_throttles += 1
        delay = min(
            c.THROTTLE_BASE_INTERVAL * c.THROTTLE_BACKOFF_MULTIPLIER**state.consecutive_throttles,
            c.THROTTLE_MAX_BACKOFF,
        )
        state.blocked_until = now + delay
        logger.warning(
            "Request frequency limit hit for %s: %d calls in the last second, delaying %.2fs",
            _mask_key(ttb_key),
            recent,
            delay,
        )
        try:
            await self._sleep(delay)
        finally:
            state.blocked_until = None

    def _check_burst(self, usage: KeyUsage) -> None:
        state = usage.throttle
        now = self._clock()
        if now - state.burst_window_start > c.BURST_WINDOW:
            state.burst_count = 0
            state.burst_window_start = now
        if state.burst_count >= c.BURST_LIMIT:
            wait = c.BURST_WINDOW - (now - state.burst_window_start)
            raise self._classifier.burst_limit_exceeded(max(wait, 0.0))
        state.burst_count += 1

    # =========================================================================
    # ACCOUNTING
    # =========================================================================

    def record_call(self, ttb_key: str, success: bool = True, latency_ms: float | None = None) -> None:
        """Count one completed upstream call, successful or not."""
        usage = self._usage(ttb_key)
        self._roll_over_if_new_day(ttb_key, usage)
        now = self._clock()

        usage.daily_count += 1
        usage.total_requests += 1
        usage.last_call_at = now
        if success:
            usage.successful_requests += 1
        else:
            usage.failed_requests += 1

        usage.request_history.append(now)
        while usage.request_history and now - usage.request_history[0] > c.HISTORY_WINDOW:
            usage.request_history.popleft()

        if latency_ms is not None:
            usage.timed_requests += 1
            usage.average_response_time_ms += (
                latency_ms - usage.average_response_time_ms
            ) / usage.timed_requests

        update_daily_usage(usage.daily_count, usage.daily_limit)
        self._log_usage(ttb_key, usage)

    def _log_usage(self, ttb_key: str, usage: KeyUsage) -> None:
        if usage.total_requests % c.USAGE_LOG_INTERVAL == 0:
            logger.info(
                "API usage for %s: %d/%d today, %d total (%.1f%% success)",
                _mask_key(ttb_key),
                usage.daily_count,
                usage.daily_limit,
                usage.total_requests,
                self._success_rate(usage),
            )

        ratio = usage.daily_count / usage.daily_limit if usage.daily_limit else 1.0
        if usage.daily_count == int(usage.daily_limit * c.CRITICAL_THRESHOLD):
            logger.error(
                "API usage for %s reached %.0f%% of the daily limit (%d/%d)",
                _mask_key(ttb_key),
                ratio * 100,
                usage.daily_count,
                usage.daily_limit,
            )
        elif usage.daily_count == int(usage.daily_limit * c.WARNING_THRESHOLD):
            logger.warning(
                "API usage for %s reached %.0f%% of the daily limit (%d/%d)",
                _mask_key(ttb_key),
                ratio * 100,
                usage.daily_count,
                usage.daily_limit,
            )

    # =========================================================================
    # DAILY RESET
    # =========================================================================

    def _today(self) -> date:
        return datetime.fromtimestamp(self._clock()).date()

    def _roll_over_if_new_day(self, ttb_key: str, usage: KeyUsage) -> bool:
        today = self._today()
        if today == usage.reset_date:
            return False
        logger.info(
            "Daily API usage reset for %s (previous day: %d/%d)",
            _mask_key(ttb_key),
            usage.daily_count,
            usage.daily_limit,
        )
        usage.daily_count = 0
        usage.reset_date = today
        return True

    def reset_expired_days(self) -> int:
        """Apply the date rollover to every tracked key; returns keys reset."""
        return sum(
            1 for key, usage in self._usages.items() if self._roll_over_if_new_day(key, usage)
        )

    def seconds_until_midnight(self) -> float:
        now = datetime.fromtimestamp(self._clock())
        midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
        return max((midnight - now).total_seconds(), 0.0)

    async def run_daily_reset(self) -> None:
        """Sleep until each local midnight and roll every key over."""
        while True:
            # A second of slack so the wake-up lands on the new date
            await self._sleep(self.seconds_until_midnight() + 1.0)
            reset = self.reset_expired_days()
            logger.info("Midnight reset applied to %d key(s)", reset)

    def start_daily_reset(self) -> asyncio.Task:
        if self._reset_task is None or self._reset_task.done():
            self._reset_task = asyncio.create_task(self.run_daily_reset(), name="aladin-daily-reset")
        return self._reset_task

    async def stop_daily_reset(self) -> None:
        task, self._reset_task = self._reset_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # STATS
    # =========================================================================

    def _usage(self, ttb_key: str) -> KeyUsage:
        usage = self._usages.get(ttb_key)
        if usage is None:
            usage = KeyUsage(
                daily_limit=self.daily_limit,
                reset_date=self._today(),
                throttle=ThrottleState(burst_window_start=self._clock()),
            )
            self._usages[ttb_key] = usage
        return usage

    @staticmethod
    def _success_rate(usage: KeyUsage) -> float:
        if not usage.total_requests:
            return 100.0
        return usage.successful_requests / usage.total_requests * 100

    def get_usage_stats(self, ttb_key: str) -> dict[str, Any]:
        usage = self._usage(ttb_key)
        self._roll_over_if_new_day(ttb_key, usage)
        return {
            "daily_count": usage.daily_count,
            "daily_limit": usage.daily_limit,
            "remaining": max(usage.daily_limit - usage.daily_count, 0),
            "usage_percentage": round(usage.daily_count / usage.daily_limit * 100, 2)
            if usage.daily_limit
            else 100.0,
            "reset_date": usage.reset_date.isoformat(),
            "last_call_at": datetime.fromtimestamp(usage.last_call_at).isoformat()
            if usage.last_call_at is not None
            else None,
        }

    def get_metrics(self, ttb_key: str) -> dict[str, Any]:
        usage = self._usage(ttb_key)
        now = self._clock()
        return {
            "total_requests": usage.total_requests,
            "successful_requests": usage.successful_requests,
            "failed_requests": usage.failed_requests,
            "success_rate": round(self._success_rate(usage), 2),
            "average_response_time_ms": round(usage.average_response_time_ms, 1),
            "requests_last_minute": sum(
                1 for t in usage.request_history if now - t <= c.HISTORY_WINDOW
            ),
            "is_throttled": usage.throttle.blocked_until is not None
            and now < usage.throttle.blocked_until,
        }

    def get_global_usage_stats(self) -> dict[str, Any]:
        self.reset_expired_days()
        daily = sum(u.daily_count for u in self._usages.values())
        return {
            "keys": len(self._usages),
            "daily_count": daily,
            "total_requests": sum(u.total_requests for u in self._usages.values()),
            "failed_requests": sum(u.failed_requests for u in self._usages.values()),
        }

    def get_all_usage_stats(self) -> dict[str, dict[str, Any]]:
        return {_mask_key(key): self.get_usage_stats(key) for key in list(self._usages)}

    def reset_stats(self, ttb_key: str | None = None) -> None:
        if ttb_key is None:
            self._usages.clear()
            logger.info("All API usage statistics cleared")
        else:
            self._usages.pop(ttb_key, None)
            logger.info("API usage statistics cleared for %s", _mask_key(ttb_key))
