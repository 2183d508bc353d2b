"""
Repository for FetchLog database operations.

Handles fetch operation logs, used for monitoring pipeline health and
performance.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from ..models import FetchLogModel
from ..session import Database


class FetchLogRepository:
    """Repository for fetch log operations."""

    def __init__(self, db: Database):
        """
        Initialize repository with database instance.

        Args:
            db: Database instance
        """
        self.db = db

    async def create_log(
        self,
        source: str,
        status: str,
        records_attempted: int,
        records_succeeded: int,
        records_failed: int,
        duration_seconds: float,
        fetch_params: Optional[dict] = None,
        error_count: int = 0,
        error_summary: Optional[List[dict]] = None,
    ) -> FetchLogModel:
        """
        Create a new fetch log entry.

        Args:
            source: Run that produced the log (e.g., "legiscan_ingestion", "gemini_analysis")
            status: Status of the run ("success", "partial", "failure")
            records_attempted: Number of records the run attempted
            records_succeeded: Number of records successfully processed
            records_failed: Number of records that failed
            duration_seconds: Duration of the run in seconds
            fetch_params: Optional parameters used for the run
            error_count: Number of errors encountered
            error_summary: Optional first errors of the run

        Returns:
            Created FetchLogModel instance
        """
        async with self.db.session() as session:
            log = FetchLogModel(
                source=source,
                status=status,
                records_attempted=records_attempted,
                records_succeeded=records_succeeded,
                records_failed=records_failed,
                duration_seconds=duration_seconds,
                fetch_params=fetch_params,
                error_count=error_count,
                error_summary=error_summary,
            )

            session.add(log)
            await session.flush()

            return log

    async def get_logs_since(
        self,
        cutoff_time: datetime,
        source: Optional[str] = None,
    ) -> List[FetchLogModel]:
        """
        Get all logs since a specific datetime, newest first.

        Args:
            cutoff_time: Naive UTC datetime to filter logs from
            source: Optional source filter
        """
        async with self.db.session() as session:
            query = select(FetchLogModel).where(
                FetchLogModel.created_at >= cutoff_time
            )

            if source:
                query = query.where(FetchLogModel.source == source)

            query = query.order_by(FetchLogModel.created_at.desc(), FetchLogModel.id.desc())

            result = await session.execute(query)
            return list(result.scalars().all())
