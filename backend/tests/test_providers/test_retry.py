"""Tests for the retry combinator, backoff schedule, error classification and circuit breaker."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from seasonscape.providers.errors import (
    AuthError,
    ClientError,
    ErrorClass,
    ProviderNetworkError,
    RateLimitedError,
    ServerError,
    classify_exception,
    error_for_status,
    parse_retry_after,
    user_message_for,
)
from seasonscape.providers.retry import CircuitBreaker, CircuitState, RetryPolicy, retry_call
from tests.conftest import SleepRecorder


class Flaky:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        item = self.results.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def test_succeeds_first_try():
    sleeper = SleepRecorder()
    fn = Flaky("ok")
    outcome = asyncio.run(retry_call(fn, RetryPolicy(), sleep=sleeper))
    assert outcome.ok
    assert outcome.value == "ok"
    assert outcome.attempts == 1
    assert sleeper.delays == []


def test_server_errors_back_off_exponentially():
    sleeper = SleepRecorder()
    fn = Flaky(ServerError("boom"), ServerError("boom"), "ok")
    outcome = asyncio.run(retry_call(fn, RetryPolicy(), sleep=sleeper))
    assert outcome.ok and outcome.attempts == 3
    assert sleeper.delays == [1.0, 2.0]


def test_rate_limit_uses_longer_schedule():
    sleeper = SleepRecorder()
    fn = Flaky(RateLimitedError("slow down"), RateLimitedError("slow down"), "ok")
    asyncio.run(retry_call(fn, RetryPolicy(), sleep=sleeper))
    assert sleeper.delays == [5.0, 10.0]


def test_retry_after_header_wins():
    sleeper = SleepRecorder()
    fn = Flaky(RateLimitedError("slow down", retry_after=7.0), "ok")
    asyncio.run(retry_call(fn, RetryPolicy(), sleep=sleeper))
    assert sleeper.delays == [7.0]


def test_exhausts_after_max_attempts():
    sleeper = SleepRecorder()
    fn = Flaky(*[ServerError("boom")] * 3)
    outcome = asyncio.run(retry_call(fn, RetryPolicy(max_attempts=3), sleep=sleeper))
    assert not outcome.ok
    assert outcome.attempts == 3
    assert fn.calls == 3
    assert outcome.error.error_class is ErrorClass.SERVER
    assert sleeper.delays == [1.0, 2.0]


def test_client_error_is_not_retried():
    sleeper = SleepRecorder()
    fn = Flaky(ClientError("bad prompt", 400), "never")
    outcome = asyncio.run(retry_call(fn, RetryPolicy(), sleep=sleeper))
    assert outcome.error.error_class is ErrorClass.CLIENT
    assert fn.calls == 1
    assert sleeper.delays == []


def test_timeout_counts_as_network_error():
    async def hang():
        await asyncio.sleep(10)

    outcome = asyncio.run(
        retry_call(hang, RetryPolicy(max_attempts=2), timeout=0.01, sleep=SleepRecorder())
    )
    assert outcome.error.error_class is ErrorClass.NETWORK
    assert outcome.attempts == 2


def test_transport_error_is_network():
    fn = Flaky(httpx.ConnectError("refused"), "ok")
    outcome = asyncio.run(retry_call(fn, RetryPolicy(), sleep=SleepRecorder()))
    assert outcome.ok and outcome.attempts == 2


def test_unexpected_exceptions_propagate():
    fn = Flaky(KeyError("bug"))
    with pytest.raises(KeyError):
        asyncio.run(retry_call(fn, RetryPolicy(), sleep=SleepRecorder()))


def test_attempt_callback():
    seen = []
    fn = Flaky(ServerError("x"), "ok")
    asyncio.run(retry_call(fn, RetryPolicy(), sleep=SleepRecorder(), on_attempt=seen.append))
    assert seen == [1, 2]


def test_delay_capped():
    policy = RetryPolicy(max_delay=3.0)
    assert policy.delay_for(ServerError("x"), 3) == 3.0
    assert policy.delay_for(ServerError("x"), 10) == 3.0
    assert policy.delay_for(RateLimitedError("x", retry_after=120), 1) == 3.0


def test_jitter_stretches_scheduled_delays():
    policy = RetryPolicy(jitter=0.3, rng=lambda: 0.5)
    assert policy.delay_for(ServerError("x"), 2) == pytest.approx(2.3)
    assert policy.delay_for(RateLimitedError("x"), 1) == pytest.approx(5.75)
    # Retry-After is taken as given
    assert policy.delay_for(RateLimitedError("x", retry_after=7.0), 1) == 7.0


def test_jitter_respects_cap():
    policy = RetryPolicy(jitter=0.3, rng=lambda: 1.0, max_delay=5.0)
    assert policy.delay_for(ServerError("x"), 3) == 5.0


def test_jittered_retries_use_policy_rng():
    sleeper = SleepRecorder()
    draws = iter([0.0, 1.0])
    policy = RetryPolicy(jitter=0.5, rng=lambda: next(draws))
    fn = Flaky(ServerError("boom"), ServerError("boom"), "ok")
    asyncio.run(retry_call(fn, policy, sleep=sleeper))
    assert sleeper.delays == [1.0, 3.0]


def test_custom_retryable_predicate():
    policy = RetryPolicy(retryable=lambda c: c is ErrorClass.NETWORK)
    fn = Flaky(ServerError("x"), "ok")
    outcome = asyncio.run(retry_call(fn, policy, sleep=SleepRecorder()))
    assert not outcome.ok and fn.calls == 1


@pytest.mark.parametrize(
    "status,cls",
    [(500, ServerError), (503, ServerError), (429, RateLimitedError), (408, ProviderNetworkError),
     (400, ClientError), (404, ClientError), (401, AuthError), (403, AuthError)],
)
def test_error_for_status(status, cls):
    response = httpx.Response(status, request=httpx.Request("POST", "https://example.test"))
    assert type(error_for_status(response, "p")) is cls


def test_classify_wraps_transport_errors():
    assert classify_exception(httpx.ReadTimeout("slow"), "p").error_class is ErrorClass.NETWORK
    assert classify_exception(asyncio.TimeoutError(), "p").error_class is ErrorClass.NETWORK
    assert classify_exception(ValueError("bug"), "p") is None


def test_parse_retry_after():
    assert parse_retry_after("12") == 12.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("garbage") is None
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None  # in the past


def test_user_messages_hide_provider_detail():
    msg = user_message_for(ErrorClass.SERVER, 6)
    assert "6 attempts" in msg
    for error_class in ErrorClass:
        assert user_message_for(error_class)
    assert "rate limit" in user_message_for(ErrorClass.RATE_LIMITED)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_circuit_opens_after_threshold():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=60, clock=clock)
    breaker.record_failure()
    assert breaker.allow()
    breaker.record_failure()
    assert breaker.state is CircuitState.OPEN
    assert not breaker.allow()


def test_circuit_half_open_allows_one_trial():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, clock=clock)
    breaker.record_failure()
    clock.now = 61
    assert breaker.allow()
    assert breaker.state is CircuitState.HALF_OPEN
    assert not breaker.allow()

    breaker.record_success()
    assert breaker.state is CircuitState.CLOSED
    assert breaker.allow()


def test_failed_trial_reopens_circuit():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=10, clock=clock)
    for _ in range(3):
        breaker.record_failure()
    clock.now = 11
    assert breaker.allow()
    breaker.record_failure()
    assert breaker.state is CircuitState.OPEN
    assert not breaker.allow()
