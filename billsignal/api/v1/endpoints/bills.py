"""
Bills API endpoints.

Responsibility: Bill endpoints for API v1
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from ...dependencies import get_pipeline_service
from ....models.projection import BillResponse
from ....services.pipeline_service import PipelineService

router = APIRouter()


@router.get("/bills", response_model=List[BillResponse])
async def list_bills(
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Number of results"),
    service: PipelineService = Depends(get_pipeline_service)
):
    """
    List stored bills with their stock predictions, newest first.

    An empty store is populated by one ingestion run before responding.
    """
    return await service.read_service().list_bills(limit=limit)
