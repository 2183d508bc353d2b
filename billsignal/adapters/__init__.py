"""
Adapters package for BillSignal.

This package contains legislative data source adapters that implement
the BaseAdapter interface.
"""

from .base_adapter import BaseAdapter
from .legiscan_adapter import LegiScanAdapter

__all__ = [
    "BaseAdapter",
    "LegiScanAdapter",
]
