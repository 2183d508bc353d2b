"""
Base adapter interface for legislative data sources.

Defines the contract that source adapters must implement. Ensures
consistent throttling, logging and response format across sources.

Responsibility: Abstract base class defining adapter contract
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, TypeVar, Any
import logging

from ..models.adapter_models import (
    AdapterResponse,
    AdapterStatus,
    AdapterError,
    AdapterMetrics,
)
from ..utils.rate_limiter import RateLimiter


# Generic type for normalized data models
T = TypeVar('T')


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


class BaseAdapter(ABC, Generic[T]):
    """
    Abstract base class for data source adapters.

    Every adapter MUST:
    1. Implement fetch() to retrieve and normalize a batch of records
    2. Implement normalize() to convert raw data to domain models
    3. Pass every outbound call through self.rate_limiter
    4. Return AdapterResponse from fetch() rather than raising per record
    5. Log all operations for observability
    """

    def __init__(
        self,
        source_name: str,
        throttle_ms: int = 200,
        timeout_seconds: int = 30
    ):
        """
        Initialize base adapter.

        Args:
            source_name: Identifier for this adapter (e.g., "legiscan")
            throttle_ms: Minimum spacing between successive source calls
            timeout_seconds: Request timeout in seconds
        """
        self.source_name = source_name
        self.throttle_ms = throttle_ms
        self.timeout_seconds = timeout_seconds

        # burst=1: strict fixed spacing, no bursting
        self.rate_limiter = RateLimiter.from_interval_ms(throttle_ms)

        self.logger = logging.getLogger(f"adapter.{source_name}")

    @abstractmethod
    async def fetch(self, **kwargs: Any) -> AdapterResponse[T]:
        """
        Fetch and normalize a batch of records from the source.

        Per-record failures are collected into the response's errors;
        only a failure of the whole operation yields a failure response.
        """

    @abstractmethod
    def normalize(self, raw_data: Any, **context: Any) -> T:
        """
        Normalize raw source data into the domain model.

        Raises:
            ValueError: If raw_data cannot be normalized (caught by fetch())
        """

    def _build_success_response(
        self,
        data: list[T],
        errors: list[AdapterError],
        start_time: datetime
    ) -> AdapterResponse[T]:
        """Build a successful (or partially successful) AdapterResponse."""
        end_time = utcnow()
        duration = (end_time - start_time).total_seconds()

        if not errors:
            status = AdapterStatus.SUCCESS
        elif data:
            status = AdapterStatus.PARTIAL_SUCCESS
        else:
            status = AdapterStatus.FAILURE

        return AdapterResponse(
            status=status,
            data=data,
            errors=errors,
            metrics=AdapterMetrics(
                records_attempted=len(data) + len(errors),
                records_succeeded=len(data),
                records_failed=len(errors),
                duration_seconds=duration,
                rate_limit_hits=self.rate_limiter.wait_count,
            ),
            source=self.source_name,
            fetch_timestamp=end_time,
        )

    def _build_error(
        self,
        error: Exception,
        retryable: bool,
        **context: Any
    ) -> AdapterError:
        """Build a structured error for one failed record or call."""
        return AdapterError(
            timestamp=utcnow(),
            error_type=type(error).__name__,
            message=str(error),
            context={"adapter": self.source_name, **context},
            retryable=retryable,
        )
