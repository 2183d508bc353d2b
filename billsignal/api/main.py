"""
FastAPI application for the BillSignal API.

Provides the pipeline triggers and the bill read projection.

Responsibility: Main API application setup and configuration
"""

# Load .env BEFORE importing settings (critical for pydantic-settings)
from dotenv import load_dotenv
load_dotenv('.env')

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from ..config import get_settings
from ..exceptions import ConfigurationError
from ..logging_config import configure_logging
from ..services.pipeline_service import PipelineService
from .v1.endpoints import bills, pipeline

settings = get_settings()

configure_logging(settings.app.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="BillSignal API",
    description="Legislative bills with predicted stock-market impact",
    version=settings.app.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

logger.info(f"CORS Origins configured: {settings.app.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight for 1 hour
)


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("Starting BillSignal API...")
    logger.info(f"Environment: {settings.app.environment}")
    logger.info(f"Debug mode: {settings.app.debug}")

    app.state.pipeline = PipelineService(settings)
    await app.state.pipeline.initialize()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down BillSignal API...")
    pipeline_service = getattr(app.state, "pipeline", None)
    if pipeline_service is not None:
        await pipeline_service.close()


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "billsignal-api"
    }


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Missing credentials fail the whole invocation."""
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc)}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc) if settings.app.debug else "An unexpected error occurred"
        }
    )


app.include_router(
    pipeline.router,
    prefix="/api/v1",
    tags=["pipeline"]
)

app.include_router(
    bills.router,
    prefix="/api/v1",
    tags=["bills"]
)
