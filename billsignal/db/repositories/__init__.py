"""
Repository package for data access operations.

Implements repository pattern for abstracting database operations.
"""

from .bill_repository import BillRepository, StoredBill
from .prediction_repository import PredictionRepository
from .fetch_log_repository import FetchLogRepository

__all__ = [
    "BillRepository",
    "StoredBill",
    "PredictionRepository",
    "FetchLogRepository",
]
