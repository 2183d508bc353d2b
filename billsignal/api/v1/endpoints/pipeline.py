"""
Pipeline trigger endpoints.

Responsibility: Start ingestion and analysis runs over HTTP
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...dependencies import get_pipeline_service
from ....services.pipeline_service import PipelineService

router = APIRouter()


@router.post("/ingest")
async def ingest_bills(
    target_year: Optional[int] = Query(None, description="Year to ingest (default: current)"),
    target_count: Optional[int] = Query(None, ge=1, description="Maximum new bills"),
    state: Optional[str] = Query(None, description="Restrict to one two-letter state code"),
    service: PipelineService = Depends(get_pipeline_service)
):
    """
    Discover and store new bills.

    Returns the ingestion report. Per-bill failures are listed in errors;
    only missing credentials fail the request.
    """
    report = await service.ingest(
        jurisdictions=[state] if state else None,
        target_year=target_year,
        target_count=target_count,
    )
    return report.to_response()


@router.post("/analyze")
async def analyze_bills(
    limit: Optional[int] = Query(None, ge=1, description="Maximum bills to analyze"),
    service: PipelineService = Depends(get_pipeline_service)
):
    """
    Analyze every unanalyzed bill.

    Returns {success, processedCount, processedIds, errors}.
    """
    report = await service.analyze(limit=limit)
    return report.to_response()
