"""
Rate limiter using token bucket algorithm.

Keeps successive calls to a rate-limited API at least a fixed interval
apart. LegiScan rejects bursts, so every source call goes through one.

Responsibility: Token bucket rate limiting for adapter requests
"""

import asyncio
import time


class RateLimiter:
    """
    Token bucket rate limiter for controlling request rates.

    With burst=1 the bucket degenerates to a fixed minimum spacing of
    1 / rate seconds between acquisitions.

    Example:
        limiter = RateLimiter.from_interval_ms(200)
        await limiter.acquire()  # Blocks until 200ms after the previous call
    """

    def __init__(self, rate: float, burst: int = 1):
        """
        Initialize rate limiter.

        Args:
            rate: Requests per second (e.g., 5.0 = 5 req/sec)
            burst: Maximum burst size (tokens in bucket at full capacity)
        """
        if rate <= 0:
            raise ValueError("Rate must be positive")
        if burst < 1:
            raise ValueError("Burst must be at least 1")

        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)  # Start with full bucket
        self.last_update = time.monotonic()
        self.lock = asyncio.Lock()
        self.wait_count = 0

    @classmethod
    def from_interval_ms(cls, interval_ms: int) -> "RateLimiter":
        """Build a limiter that spaces calls at least interval_ms apart"""
        if interval_ms <= 0:
            raise ValueError("Interval must be positive")
        return cls(rate=1000.0 / interval_ms, burst=1)

    @property
    def interval_seconds(self) -> float:
        """Minimum spacing between acquisitions at burst=1"""
        return 1.0 / self.rate

    async def acquire(self) -> None:
        """
        Acquire a token, blocking until one is available.

        Refills tokens for the elapsed time, waits for the next token when
        the bucket is empty, then consumes one.
        """
        async with self.lock:
            now = time.monotonic()
            elapsed = now - self.last_update

            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.rate
                self.wait_count += 1
                await asyncio.sleep(wait_time)

                # The waited-for token is consumed immediately
                self.tokens = 0
                self.last_update = time.monotonic()
            else:
                self.tokens -= 1
