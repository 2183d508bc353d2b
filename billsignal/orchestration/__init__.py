"""
Orchestration package for BillSignal.

Coordinates adapters, the prediction model and the bill store into the
ingestion and analysis runs.
"""

from .analysis_reconciler import AnalysisReconciler
from .ingestion_pipeline import IngestionPipeline

__all__ = [
    "AnalysisReconciler",
    "IngestionPipeline",
]
