import httpx
import pytest

from billsignal.utils.rate_limiter import RateLimiter
from billsignal.utils.retry import (
    RetryError,
    calculate_backoff,
    is_retryable_error,
    retry_async,
)

from fakes import RecordingSleep


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test/")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


def test_backoff_doubles_per_attempt_without_jitter() -> None:
    delays = [calculate_backoff(a, base_delay=2.0, jitter=False) for a in (1, 2, 3)]

    assert delays == [2.0, 4.0, 8.0]


def test_backoff_jitter_stays_within_twenty_percent() -> None:
    for attempt in (1, 2, 3):
        base = 2.0 * 2 ** (attempt - 1)
        for _ in range(50):
            delay = calculate_backoff(attempt, base_delay=2.0)
            assert base <= delay <= base * 1.2


def test_backoff_is_capped() -> None:
    assert calculate_backoff(10, base_delay=1.0, max_delay=30.0, jitter=False) == 30.0


def test_retryable_errors() -> None:
    assert is_retryable_error(_status_error(429))
    assert is_retryable_error(_status_error(503))
    assert is_retryable_error(httpx.ConnectError("refused"))
    assert is_retryable_error(httpx.ReadTimeout("slow"))
    assert not is_retryable_error(_status_error(400))
    assert not is_retryable_error(_status_error(403))
    assert not is_retryable_error(ValueError("bad"))


async def test_retry_async_recovers_after_transient_failures() -> None:
    sleep = RecordingSleep()
    outcomes = [_status_error(503), _status_error(429), "ok"]

    async def call():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    result = await retry_async(call, max_attempts=3, base_delay=1.0, jitter=False, sleep=sleep)

    assert result == "ok"
    assert sleep.delays == [1.0, 2.0]


async def test_retry_async_raises_retry_error_when_exhausted() -> None:
    sleep = RecordingSleep()

    async def call():
        raise _status_error(503)

    with pytest.raises(RetryError) as exc_info:
        await retry_async(call, max_attempts=3, base_delay=1.0, jitter=False, sleep=sleep)

    assert isinstance(exc_info.value.last_exception, httpx.HTTPStatusError)
    assert len(sleep.delays) == 2


async def test_retry_async_does_not_retry_client_errors() -> None:
    sleep = RecordingSleep()
    calls = []

    async def call():
        calls.append(1)
        raise _status_error(401)

    with pytest.raises(httpx.HTTPStatusError):
        await retry_async(call, max_attempts=3, sleep=sleep)

    assert len(calls) == 1
    assert sleep.delays == []


def test_rate_limiter_interval() -> None:
    limiter = RateLimiter.from_interval_ms(200)

    assert limiter.burst == 1
    assert limiter.interval_seconds == pytest.approx(0.2)

    with pytest.raises(ValueError):
        RateLimiter.from_interval_ms(0)
