"""
Retry logic with exponential backoff for resilient API calls.

Handles transient failures with a bounded attempt count, exponential
backoff, and jitter to prevent thundering herd across overlapping runs.

Responsibility: Provide retry utilities for network operations
"""

import asyncio
import random
from typing import Awaitable, TypeVar, Callable, Optional, Type, Tuple
import logging

import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Overload / capacity signals worth waiting out
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryError(Exception):
    """Raised when all retry attempts are exhausted"""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


def calculate_backoff(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter_ratio: float = 0.2,
    jitter: bool = True
) -> float:
    """
    Calculate backoff delay for retry attempt.

    Formula: base_delay * 2 ** (attempt - 1), capped at max_delay, plus a
    uniform random jitter of up to jitter_ratio of that value.

    Args:
        attempt: Attempt that just failed (1-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds (before jitter)
        jitter_ratio: Upper bound of jitter as a fraction of the delay
        jitter: Add randomization to prevent synchronized retries

    Returns:
        Delay in seconds for this attempt

    Example:
        >>> calculate_backoff(1, jitter=False)  # 1.0s
        >>> calculate_backoff(2, jitter=False)  # 2.0s
        >>> calculate_backoff(3, jitter=False)  # 4.0s
    """
    if attempt < 1:
        raise ValueError("attempt is 1-indexed")

    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)

    if jitter:
        delay += random.uniform(0, jitter_ratio * delay)

    return delay


def is_retryable_error(
    exception: BaseException,
    retryable_exceptions: Tuple[Type[BaseException], ...] = ()
) -> bool:
    """
    Determine if an exception should trigger a retry.

    Default retryable conditions:
        - Network timeouts and connection errors
        - HTTP 5xx gateway/overload errors
        - HTTP 429 (rate limit / resource exhausted)
    """
    if retryable_exceptions and isinstance(exception, retryable_exceptions):
        return True

    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True

    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code in RETRYABLE_STATUS_CODES

    return False


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[BaseException], ...] = (),
    logger_instance: Optional[logging.Logger] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call"
) -> T:
    """
    Retry an async function with exponential backoff.

    Args:
        func: Zero-argument async callable to retry
        max_attempts: Maximum attempts (1 = no retries)
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay cap in seconds
        jitter: Add randomization to delays
        retryable_exceptions: Additional exception types to retry
        logger_instance: Logger to use (defaults to module logger)
        sleep: Awaitable sleep function (replaceable in tests)
        label: Name used in log lines

    Returns:
        Result of successful function call

    Raises:
        RetryError: If all attempts are exhausted on retryable errors
        Exception: The original exception if it is not retryable

    Example:
        async def call_model():
            response = await client.post(url, json=body)
            response.raise_for_status()
            return response.json()

        data = await retry_async(call_model, max_attempts=3, base_delay=2.0)
    """
    log = logger_instance or logger

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            result = await func()

            if attempt > 1:
                log.info(f"{label} succeeded after {attempt} attempts")

            return result

        except Exception as e:
            if not is_retryable_error(e, retryable_exceptions):
                log.warning(f"{label}: non-retryable error: {e}")
                raise

            if attempt >= max_attempts:
                log.error(
                    f"{label}: all {max_attempts} attempts exhausted. "
                    f"Last error: {e}"
                )
                raise RetryError(
                    f"{label} failed after {max_attempts} attempts",
                    last_exception=e
                ) from e

            delay = calculate_backoff(
                attempt=attempt,
                base_delay=base_delay,
                max_delay=max_delay,
                jitter=jitter
            )

            log.warning(
                f"{label}: attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )

            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise RetryError(f"{label} failed after {max_attempts} attempts")
