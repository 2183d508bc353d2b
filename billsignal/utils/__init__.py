"""
Utilities package for BillSignal.

This package contains reusable utility classes for:
- Rate limiting
- Retry logic
"""

from .rate_limiter import RateLimiter
from .retry import (
    retry_async,
    calculate_backoff,
    is_retryable_error,
    RetryError,
)

__all__ = [
    "RateLimiter",
    "retry_async",
    "calculate_backoff",
    "is_retryable_error",
    "RetryError",
]
