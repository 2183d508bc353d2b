"""Services package for BillSignal"""

from .bill_read_service import BillReadService, project_bill
from .pipeline_service import PipelineService

__all__ = ["BillReadService", "PipelineService", "project_bill"]
