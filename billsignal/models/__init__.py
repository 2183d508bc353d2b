"""
Models package for BillSignal.

This package contains all Pydantic models for:
- Adapter responses and metadata
- Domain entities (bills, sessions, master-list entries)
- Validated model output and run reports
"""

from .adapter_models import (
    AdapterStatus,
    AdapterError,
    AdapterMetrics,
    AdapterResponse,
)
from .bill import Bill, BillSummary, LegislativeSession, Sponsor
from .analysis import (
    AnalysisReport,
    BillAnalysis,
    IngestionReport,
    RunError,
    StockPredictionInput,
)
from .projection import AffectedStockResponse, BillResponse, SponsorResponse

__all__ = [
    "AdapterStatus",
    "AdapterError",
    "AdapterMetrics",
    "AdapterResponse",
    "Bill",
    "BillSummary",
    "LegislativeSession",
    "Sponsor",
    "AnalysisReport",
    "BillAnalysis",
    "IngestionReport",
    "RunError",
    "StockPredictionInput",
    "AffectedStockResponse",
    "BillResponse",
    "SponsorResponse",
]
