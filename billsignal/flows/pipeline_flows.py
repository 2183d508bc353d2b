"""
Prefect flows for the BillSignal pipeline.

Defines flows for:
- Ingesting new bills from LegiScan
- Analyzing unanalyzed bills with Gemini
- Running both back to back on a schedule
- Monitoring recent runs through the fetch log

Responsibility: Orchestrate periodic ingestion and analysis runs
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from prefect import flow, task, get_run_logger

from ..config import get_settings
from ..db.repositories.fetch_log_repository import FetchLogRepository
from ..db.session import Database
from ..services.pipeline_service import PipelineService


@task(
    name="ingest_bills",
    description="Discover new LegiScan bills and store them unanalyzed",
    retries=2,
    retry_delay_seconds=60,
)
async def ingest_bills_task(
    target_year: Optional[int] = None,
    target_count: Optional[int] = None,
    per_jurisdiction: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Run one ingestion.

    Returns:
        Ingestion report as a dict
    """
    logger = get_run_logger()
    logger.info(
        "Starting ingestion: target_year=%s, target_count=%s, per_jurisdiction=%s",
        target_year,
        target_count,
        per_jurisdiction,
    )

    async with PipelineService(get_settings()) as service:
        report = await service.ingest(
            target_year=target_year,
            target_count=target_count,
            per_jurisdiction=per_jurisdiction,
        )

    logger.info(
        f"Ingestion complete: {report.inserted_count} inserted, "
        f"{report.skipped_existing} already stored, {len(report.errors)} errors"
    )
    for error in report.errors[:10]:
        logger.warning(f"Ingestion error [{error.stage}]: {error.message}")

    return report.to_response()


@task(
    name="analyze_bills",
    description="Analyze unanalyzed bills with the prediction model",
    retries=1,
    retry_delay_seconds=120,
)
async def analyze_bills_task(limit: Optional[int] = None) -> Dict[str, Any]:
    """
    Run one analysis pass.

    Returns:
        Analysis report as a camelCase dict
    """
    logger = get_run_logger()
    logger.info(f"Starting analysis (limit={limit})")

    async with PipelineService(get_settings()) as service:
        report = await service.analyze(limit=limit)

    logger.info(
        f"Analysis complete: {report.processed_count} bills analyzed "
        f"in {report.batches} batches, {len(report.errors)} errors"
    )
    return report.to_response()


@task(
    name="monitor_fetch_operations",
    description="Summarize recent pipeline runs from the fetch log",
    retries=2,
    retry_delay_seconds=30,
)
async def monitor_fetch_operations_task(hours_back: int = 24) -> Dict[str, Any]:
    """
    Summarize runs from the last N hours.

    Args:
        hours_back: Number of hours to look back
    """
    logger = get_run_logger()
    logger.info(f"Monitoring pipeline runs for last {hours_back} hours...")

    db = Database(get_settings().db)
    await db.initialize()

    try:
        repo = FetchLogRepository(db)

        cutoff_time = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=hours_back)
        logs = await repo.get_logs_since(cutoff_time)

        total_operations = len(logs)
        successful = sum(1 for log in logs if log.status == "success")
        failed = sum(1 for log in logs if log.status == "failure")
        partial = sum(1 for log in logs if log.status == "partial")

        avg_duration = (
            sum(log.duration_seconds for log in logs) / total_operations
            if total_operations > 0
            else 0
        )

        stats = {
            "total_operations": total_operations,
            "successful": successful,
            "failed": failed,
            "partial": partial,
            "avg_duration_seconds": round(avg_duration, 2),
            "success_rate": round(successful / total_operations * 100, 2) if total_operations > 0 else 0,
        }

        logger.info(f"Monitoring stats: {stats}")
        return stats

    finally:
        await db.close()


@flow(
    name="ingest-bills",
    description="Ingest the newest bills of the target year from LegiScan",
)
async def ingest_bills_flow(
    target_year: Optional[int] = None,
    target_count: Optional[int] = None,
    per_jurisdiction: Optional[bool] = None,
) -> Dict[str, Any]:
    """Ingestion on its own."""
    return await ingest_bills_task(
        target_year=target_year,
        target_count=target_count,
        per_jurisdiction=per_jurisdiction,
    )


@flow(
    name="analyze-bills",
    description="Predict passage and stock impact for unanalyzed bills",
)
async def analyze_bills_flow(limit: Optional[int] = None) -> Dict[str, Any]:
    """Analysis on its own."""
    return await analyze_bills_task(limit=limit)


@flow(
    name="ingest-and-analyze",
    description="Scheduled run: ingest new bills, then analyze everything unanalyzed",
)
async def ingest_and_analyze_flow(
    target_year: Optional[int] = None,
    target_count: Optional[int] = None,
    analysis_limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Main scheduled flow.

    This flow:
    1. Ingests new bills (existing ones are skipped before any detail fetch)
    2. Analyzes all unanalyzed bills, including leftovers from earlier runs
    3. Reports run statistics from the fetch log
    """
    logger = get_run_logger()
    logger.info("Starting BillSignal ingest-and-analyze flow")

    ingestion = await ingest_bills_task(target_year=target_year, target_count=target_count)
    analysis = await analyze_bills_task(limit=analysis_limit)
    stats = await monitor_fetch_operations_task(hours_back=24)

    logger.info(
        f"Flow complete: {ingestion['inserted_count']} bills ingested, "
        f"{analysis['processedCount']} bills analyzed"
    )

    return {
        "ingestion": ingestion,
        "analysis": analysis,
        "monitoring": stats,
    }


if __name__ == "__main__":
    import asyncio

    asyncio.run(ingest_and_analyze_flow())
