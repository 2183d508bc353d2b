"""
Database package for BillSignal.

Provides ORM models, session management, and repository pattern
for data persistence.
"""

from .models import Base, BillModel, StockPredictionModel, FetchLogModel
from .session import Database

__all__ = [
    "Base",
    "BillModel",
    "StockPredictionModel",
    "FetchLogModel",
    "Database",
]
