"""
FastAPI dependencies.
"""

from fastapi import Request

from ..services.pipeline_service import PipelineService


def get_pipeline_service(request: Request) -> PipelineService:
    """PipelineService created at application startup"""
    return request.app.state.pipeline
