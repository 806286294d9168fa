"""Consecutive-failure circuit breaker for the Aladin API."""

import logging
import time
from collections.abc import Callable

from .constants import BREAKER_COOLDOWN, BREAKER_THRESHOLD
from .errors import ErrorClassifier, default_classifier

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Blocks calls after ``threshold`` consecutive failures for ``cooldown`` seconds.

    There is no explicit half-open state: once the cooldown has elapsed the
    next call resets the counter and goes through, and a further failure
    starts counting from one again.
    """

    def __init__(
        self,
        threshold: int = BREAKER_THRESHOLD,
        cooldown: float = BREAKER_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        classifier: ErrorClassifier | None = None,
    ):
        self.threshold = threshold
        self.cooldown = cooldown
        self._clock = clock
        self._classifier = classifier or default_classifier
        self.consecutive_failures = 0
        self.last_failure_at: float | None = None

    @property
    def is_open(self) -> bool:
        if self.consecutive_failures < self.threshold or self.last_failure_at is None:
            return False
        return self._clock() - self.last_failure_at < self.cooldown

    @property
    def state(self) -> str:
        return "open" if self.is_open else "closed"

    def check_before_call(self) -> None:
        """Raise ``ServiceUnavailable`` while open; reset after the cooldown."""
        if self.consecutive_failures < self.threshold:
            return
        if self.is_open:
            retry_after = self.cooldown - (self._clock() - (self.last_failure_at or 0.0))
            raise self._classifier.service_unavailable(max(retry_after, 0.0))
        logger.info("Circuit breaker cooldown elapsed; closing")
        self.reset()

    def on_success(self) -> None:
        if self.consecutive_failures:
            logger.debug("Circuit breaker reset after success")
        self.reset()

    def on_failure(self) -> None:
        self.consecutive_failures += 1
        self.last_failure_at = self._clock()
        if self.consecutive_failures == self.threshold:
            logger.error(
                "Circuit breaker opened after %d consecutive failures; blocking calls for %.0fs",
                self.consecutive_failures,
                self.cooldown,
            )

    def reset(self) -> None:
        self.consecutive_failures = 0
        self.last_failure_at = None
