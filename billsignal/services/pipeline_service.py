"""
Pipeline service: builds the run components from Settings.

Each trigger surface (API, CLI, Prefect flows) goes through this service so
credentials are checked before any network call and HTTP clients are
closed after every run.

Responsibility: Wire settings, database and clients into ingestion/analysis runs
"""

from datetime import date
from typing import Awaitable, Callable, Optional, Sequence
import asyncio
import logging

import httpx

from .bill_read_service import BillReadService
from ..adapters.legiscan_adapter import LegiScanAdapter
from ..config import Settings
from ..db.repositories import BillRepository, FetchLogRepository, PredictionRepository
from ..db.session import Database
from ..llm.gemini_client import GeminiPredictionClient
from ..models.analysis import AnalysisReport, IngestionReport
from ..orchestration.analysis_reconciler import AnalysisReconciler
from ..orchestration.ingestion_pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class PipelineService:
    """
    Entry point for ingestion and analysis runs.

    Example:
        async with PipelineService(settings) as service:
            ingestion = await service.ingest()
            analysis = await service.analyze()
    """

    def __init__(
        self,
        settings: Settings,
        database: Optional[Database] = None,
        legiscan_transport: Optional[httpx.AsyncBaseTransport] = None,
        gemini_transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize pipeline service.

        Args:
            settings: Process settings
            database: Optional Database (if None, one is built from settings.db)
            legiscan_transport: Optional httpx transport for LegiScan (tests)
            gemini_transport: Optional httpx transport for Gemini (tests)
            sleep: Awaitable sleep for retry backoff and batch spacing
        """
        self.settings = settings
        self.database = database or Database(settings.db)
        self._owns_database = database is None
        self._legiscan_transport = legiscan_transport
        self._gemini_transport = gemini_transport
        self._sleep = sleep

        self.bills = BillRepository(self.database)
        self.predictions = PredictionRepository(self.database)
        self.fetch_logs = FetchLogRepository(self.database)

    async def __aenter__(self):
        """Async context manager entry"""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    async def initialize(self) -> None:
        if not self.database.is_initialized:
            await self.database.initialize()

    async def ingest(
        self,
        jurisdictions: Optional[Sequence[str]] = None,
        target_year: Optional[int] = None,
        target_count: Optional[int] = None,
        per_jurisdiction: Optional[bool] = None
    ) -> IngestionReport:
        """
        Run ingestion once.

        Raises:
            ConfigurationError: LegiScan credentials are missing
        """
        self.settings.require_ingestion_credentials()

        adapter = LegiScanAdapter(self.settings.legiscan, transport=self._legiscan_transport)
        try:
            pipeline = IngestionPipeline(
                adapter,
                self.bills,
                self.settings.pipeline,
                fetch_logs=self.fetch_logs,
            )
            return await pipeline.run(
                jurisdictions=jurisdictions,
                target_year=target_year,
                target_count=target_count,
                per_jurisdiction=per_jurisdiction,
            )
        finally:
            await adapter.close()

    async def analyze(
        self,
        limit: Optional[int] = None,
        run_date: Optional[date] = None
    ) -> AnalysisReport:
        """
        Run analysis once over all unanalyzed bills.

        Raises:
            ConfigurationError: Gemini credentials are missing
        """
        self.settings.require_analysis_credentials()

        client = GeminiPredictionClient(
            self.settings.gemini,
            transport=self._gemini_transport,
            sleep=self._sleep,
            max_predictions_per_bill=self.settings.pipeline.max_predictions_per_bill,
            description_max_chars=self.settings.pipeline.description_max_chars,
        )
        try:
            reconciler = AnalysisReconciler(
                client,
                self.bills,
                self.predictions,
                self.settings.pipeline,
                fetch_logs=self.fetch_logs,
                sleep=self._sleep,
            )
            return await reconciler.run(limit=limit, run_date=run_date)
        finally:
            await client.close()

    def read_service(self) -> BillReadService:
        """Read projection that populates an empty store through ingest()"""
        return BillReadService(self.bills, ingest=self.ingest)

    async def close(self) -> None:
        if self._owns_database:
            await self.database.close()
