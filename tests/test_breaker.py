"""Tests for the circuit breaker."""

import pytest

from aladin_mcp.breaker import CircuitBreaker
from aladin_mcp.errors import ErrorKind, StandardError


@pytest.fixture
def breaker(clock, classifier):
    return CircuitBreaker(threshold=5, cooldown=60.0, clock=clock, classifier=classifier)


class TestCircuitBreaker:
    def test_stays_closed_below_threshold(self, breaker):
        for _ in range(4):
            breaker.on_failure()
        breaker.check_before_call()
        assert breaker.state == "closed"

    def test_opens_after_exactly_threshold_failures(self, breaker):
        for _ in range(5):
            breaker.on_failure()
        assert breaker.state == "open"
        with pytest.raises(StandardError) as exc_info:
            breaker.check_before_call()
        assert exc_info.value.kind is ErrorKind.SERVICE_UNAVAILABLE
        assert exc_info.value.retryable is True
        assert exc_info.value.details["retry_after"] == pytest.approx(60.0)

    def test_passes_after_cooldown_and_resets(self, breaker, clock):
        for _ in range(5):
            breaker.on_failure()
        clock.advance(59)
        with pytest.raises(StandardError):
            breaker.check_before_call()

        clock.advance(1)
        breaker.check_before_call()
        assert breaker.consecutive_failures == 0
        assert breaker.last_failure_at is None

    def test_success_resets_counter(self, breaker):
        for _ in range(4):
            breaker.on_failure()
        breaker.on_success()
        breaker.on_failure()
        assert breaker.consecutive_failures == 1
        breaker.check_before_call()
