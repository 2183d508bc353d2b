"""
Analysis reconciliation.

Moves bills from unanalyzed to analyzed: selects bills whose sentinel is
NULL, sends them to the prediction model in batches, and writes each
matched analysis in two phases (predictions first, then the bill row that
references them).

Bill outcome per run:
    Unanalyzed -> MatchedAndPersisted      (sentinel set)
               -> MatchedButPersistFailed  (sentinel stays NULL)
               -> Unmatched                (sentinel stays NULL, attempt counted)

Responsibility: Orchestrate batched analysis and reconcile partial failures
"""

from datetime import date
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence
import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..adapters.base_adapter import utcnow
from ..config import PipelineConfig
from ..db.repositories.bill_repository import BillRepository, StoredBill
from ..db.repositories.fetch_log_repository import FetchLogRepository
from ..db.repositories.prediction_repository import PredictionRepository
from ..exceptions import ModelError
from ..llm.parsing import match_analyses
from ..models.analysis import AnalysisReport, BillAnalysis, RunError

logger = logging.getLogger(__name__)

FETCH_LOG_SOURCE = "gemini_analysis"
MAX_LOGGED_ERRORS = 10


class PredictionModelClient(Protocol):
    async def analyze_batch(
        self,
        bills: Sequence[StoredBill],
        run_date: Optional[date] = None
    ) -> List[BillAnalysis]:
        ...


def partition(bills: Sequence[StoredBill], size: int) -> List[List[StoredBill]]:
    """Split into consecutive batches of at most size, preserving order"""
    return [list(bills[i:i + size]) for i in range(0, len(bills), size)]


class AnalysisReconciler:
    """
    Runs the unanalyzed -> analyzed transition for stored bills.

    Batches run sequentially and bills within a batch in source order. A
    failed batch or bill is recorded in the report and the run continues.

    Example:
        reconciler = AnalysisReconciler(
            client,
            BillRepository(db),
            PredictionRepository(db),
            settings.pipeline,
        )
        report = await reconciler.run()
    """

    def __init__(
        self,
        model_client: PredictionModelClient,
        bills: BillRepository,
        predictions: PredictionRepository,
        config: PipelineConfig,
        fetch_logs: Optional[FetchLogRepository] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.model_client = model_client
        self.bills = bills
        self.predictions = predictions
        self.config = config
        self.fetch_logs = fetch_logs
        self._sleep = sleep

    async def run(
        self,
        limit: Optional[int] = None,
        run_date: Optional[date] = None
    ) -> AnalysisReport:
        """
        Analyze every currently unanalyzed bill once.

        Args:
            limit: Maximum bills to select (default: configured analysis_limit)
            run_date: Date decision dates are bounded against (default: today)

        Returns:
            AnalysisReport; success is True unless the run could not start
        """
        start_time = utcnow()
        run_date = run_date or date.today()
        report = AnalysisReport()

        pending = await self.bills.select_unanalyzed(
            limit=limit if limit is not None else self.config.analysis_limit,
            max_attempts=self.config.max_analysis_attempts
        )

        if not pending:
            logger.info("No unanalyzed bills, nothing to do")
            return report

        batches = partition(pending, self.config.batch_size)
        logger.info(
            f"Analyzing {len(pending)} bills in {len(batches)} batches "
            f"of up to {self.config.batch_size}"
        )

        for index, batch in enumerate(batches, start=1):
            if index > 1 and self.config.inter_batch_delay_seconds > 0:
                await self._sleep(self.config.inter_batch_delay_seconds)

            logger.info(f"Batch {index}/{len(batches)}: {len(batch)} bills")
            await self._process_batch(batch, run_date, report)
            report.batches += 1

        report.processed_count = len(report.processed_ids)

        duration = (utcnow() - start_time).total_seconds()
        logger.info(
            f"Analysis complete: processed={report.processed_count}/{len(pending)}, "
            f"errors={len(report.errors)}, duration={duration:.1f}s"
        )

        await self._write_fetch_log(report, len(pending), duration)
        return report

    async def _process_batch(
        self,
        batch: List[StoredBill],
        run_date: date,
        report: AnalysisReport
    ) -> None:
        try:
            analyses = await self.model_client.analyze_batch(batch, run_date=run_date)
        except ModelError as e:
            logger.error(f"Batch failed, {len(batch)} bills left unanalyzed: {e}")
            for bill in batch:
                report.errors.append(RunError(
                    stage="model",
                    message=str(e),
                    external_id=bill.external_id,
                    bill_id=bill.id,
                ))
            await self._record_failed_attempts(batch, report)
            return

        matched, unmatched = match_analyses(batch, analyses)

        for bill, analysis in matched:
            await self._persist_analysis(bill, analysis, report)

        for bill in unmatched:
            report.errors.append(RunError(
                stage="match",
                message="No valid analysis returned for bill",
                external_id=bill.external_id,
                bill_id=bill.id,
            ))
        await self._record_failed_attempts(unmatched, report)

    async def _persist_analysis(
        self,
        bill: StoredBill,
        analysis: BillAnalysis,
        report: AnalysisReport
    ) -> bool:
        """Phase 1: insert predictions. Phase 2: point the bill at them."""
        stocks = analysis.affected_stocks[:self.config.max_predictions_per_bill]

        try:
            prediction_ids = await self.predictions.insert_predictions(bill.id, stocks)
        except SQLAlchemyError as e:
            logger.error(f"Prediction insert failed for bill {bill.external_id}: {e}")
            report.errors.append(RunError(
                stage="insert_predictions",
                message=str(e),
                external_id=bill.external_id,
                bill_id=bill.id,
            ))
            return False

        try:
            updated = await self.bills.update_analysis(
                bill.id,
                passing_likelihood=analysis.passing_likelihood,
                estimated_decision_date=analysis.estimated_decision_date,
                affected_stock_ids=prediction_ids,
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Bill update failed for {bill.external_id}, "
                f"{len(prediction_ids)} predictions left orphaned: {e}"
            )
            report.errors.append(RunError(
                stage="update_bill",
                message=str(e),
                external_id=bill.external_id,
                bill_id=bill.id,
            ))
            return False

        if not updated:
            logger.warning(
                f"Bill {bill.external_id} was analyzed by another run, "
                f"{len(prediction_ids)} predictions left orphaned"
            )
            report.errors.append(RunError(
                stage="update_bill",
                message="Bill no longer unanalyzed",
                external_id=bill.external_id,
                bill_id=bill.id,
            ))
            return False

        logger.info(
            f"Analyzed bill {bill.external_id}: likelihood={analysis.passing_likelihood}, "
            f"stocks={len(prediction_ids)}"
        )
        report.processed_ids.append(bill.external_id)
        return True

    async def _record_failed_attempts(
        self,
        bills: Sequence[StoredBill],
        report: AnalysisReport
    ) -> None:
        if not bills:
            return
        try:
            await self.bills.record_failed_attempt([b.id for b in bills])
        except SQLAlchemyError as e:
            logger.error(f"Could not record failed attempts for {len(bills)} bills: {e}")
            report.errors.append(RunError(stage="record_attempt", message=str(e)))

    async def _write_fetch_log(
        self,
        report: AnalysisReport,
        attempted: int,
        duration: float
    ) -> None:
        if self.fetch_logs is None:
            return

        if not report.errors:
            status = "success"
        elif report.processed_count:
            status = "partial"
        else:
            status = "failure"

        try:
            await self.fetch_logs.create_log(
                source=FETCH_LOG_SOURCE,
                status=status,
                records_attempted=attempted,
                records_succeeded=report.processed_count,
                records_failed=attempted - report.processed_count,
                duration_seconds=duration,
                fetch_params={
                    "batch_size": self.config.batch_size,
                    "batches": report.batches,
                    "max_analysis_attempts": self.config.max_analysis_attempts,
                },
                error_count=len(report.errors),
                error_summary=[
                    e.model_dump(mode="json", by_alias=True)
                    for e in report.errors[:MAX_LOGGED_ERRORS]
                ] or None,
            )
        except SQLAlchemyError as e:
            logger.error(f"Could not write fetch log: {e}")
