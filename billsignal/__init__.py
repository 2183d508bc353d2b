"""
BillSignal: legislative bill ingestion and stock-impact analysis pipeline.
"""

__version__ = "1.0.0"
