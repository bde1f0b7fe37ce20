"""Structured retry combinator and a per-provider circuit breaker.

retry_call() returns a RetryOutcome value instead of raising provider errors,
so callers branch on the outcome rather than on exceptions.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from seasonscape.providers.errors import (
    RETRYABLE,
    ErrorClass,
    ProviderError,
    RateLimitedError,
    classify_exception,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _default_retryable(error_class: ErrorClass) -> bool:
    return error_class in RETRYABLE


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt bound and per-error-class backoff schedule.

    `jitter` stretches each scheduled delay by up to that fraction, drawn from
    `rng`. A server-supplied Retry-After is used as given.
    """

    max_attempts: int = 3
    base_delays: tuple[float, ...] = (1.0, 2.0, 4.0)
    rate_limit_delays: tuple[float, ...] = (5.0, 10.0, 20.0)
    max_delay: float = 30.0
    retryable: Callable[[ErrorClass], bool] = field(default=_default_retryable)
    jitter: float = 0.0
    rng: Callable[[], float] = field(default=random.random)

    def delay_for(self, error: ProviderError, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        if isinstance(error, RateLimitedError) and error.retry_after is not None:
            return min(error.retry_after, self.max_delay)
        if error.error_class is ErrorClass.RATE_LIMITED:
            delays = self.rate_limit_delays
        else:
            delays = self.base_delays
        idx = min(max(attempt, 1), len(delays)) - 1
        delay = delays[idx] * (1 + self.jitter * self.rng())
        return min(delay, self.max_delay)


@dataclass
class RetryOutcome(Generic[T]):
    value: T | None = None
    error: ProviderError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str = "provider",
    timeout: float | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_attempt: Callable[[int], None] | None = None,
    on_retry: Callable[[int, ProviderError, float], None] | None = None,
) -> RetryOutcome[T]:
    """Call `fn` up to policy.max_attempts times.

    Each attempt is bounded by `timeout`; a timeout counts as a network error.
    Exceptions that are not provider/transport failures propagate unchanged.
    """
    last_error: ProviderError | None = None

    for attempt in range(1, policy.max_attempts + 1):
        if on_attempt is not None:
            on_attempt(attempt)
        try:
            if timeout is not None:
                value = await asyncio.wait_for(fn(), timeout)
            else:
                value = await fn()
            return RetryOutcome(value=value, attempts=attempt)
        except Exception as exc:
            error = classify_exception(exc, label)
            if error is None:
                raise
            last_error = error

        logger.warning(
            "%s attempt %d/%d failed (%s): %s",
            label, attempt, policy.max_attempts, last_error.error_class.value, last_error,
        )
        if not policy.retryable(last_error.error_class) or attempt == policy.max_attempts:
            return RetryOutcome(error=last_error, attempts=attempt)

        delay = policy.delay_for(last_error, attempt)
        if on_retry is not None:
            on_retry(attempt, last_error, delay)
        logger.info("%s retrying in %.1fs", label, delay)
        await sleep(delay)

    return RetryOutcome(error=last_error, attempts=policy.max_attempts)


class CircuitState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stops calling a provider after repeated exhausted jobs.

    After `reset_timeout` seconds open, one trial call is let through
    (half-open); its result closes or re-opens the circuit.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self._opened_at: float | None = None
        self._trial_pending = False

    def allow(self) -> bool:
        if self.state is CircuitState.OPEN:
            if self._opened_at is not None and self._clock() - self._opened_at >= self.reset_timeout:
                self.state = CircuitState.HALF_OPEN
                self._trial_pending = True
                return True
            return False
        if self.state is CircuitState.HALF_OPEN:
            return not self._trial_pending
        return True

    def record_success(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self._opened_at = None
        self._trial_pending = False

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state is CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self._opened_at = self._clock()
        self._trial_pending = False

    def release(self) -> None:
        """Give back a half-open trial that ended without a result (e.g. cancelled)."""
        self._trial_pending = False
