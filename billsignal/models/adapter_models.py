"""
Adapter response models.

The envelope a source adapter's batch fetch returns: normalized records,
per-record errors and run metrics side by side.

Responsibility: Data transfer objects for adapter batch operations
"""

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar, Optional, List, Dict, Any

from pydantic import BaseModel, Field


class AdapterStatus(str, Enum):
    """Outcome of one batch fetch"""
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"  # some bills normalized, some failed
    FAILURE = "failure"


class AdapterError(BaseModel):
    """One failed source call or record, with the ids needed to find it again"""
    timestamp: datetime
    error_type: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    # Transient failures (network, 5xx) are picked up again by a later run
    retryable: bool = False


class AdapterMetrics(BaseModel):
    records_attempted: int = Field(ge=0)
    records_succeeded: int = Field(ge=0)
    records_failed: int = Field(ge=0)
    duration_seconds: float = Field(ge=0.0)
    rate_limit_hits: int = Field(ge=0, default=0)


T = TypeVar('T')


class AdapterResponse(BaseModel, Generic[T]):
    """
    Result of a batch fetch.

    T is the normalized record type (Bill for LegiScan). Per-record failures
    land in errors instead of aborting the batch.
    """
    status: AdapterStatus
    data: Optional[List[T]] = None
    errors: List[AdapterError] = Field(default_factory=list)
    metrics: AdapterMetrics
    source: str
    fetch_timestamp: datetime
