"""
Bill ingestion pipeline orchestration.

Discovers candidate bills for a target year across jurisdictions, walks
them newest first and stores the ones not already known.

Pipeline stages:
1. List sessions covering the target year, per jurisdiction
2. List master bills per session, keep those with a status_date in the year
3. Sort candidates newest first
4. exists() -> adapter.fetch() (detail + normalize) -> insert_bill(), until capped

Responsibility: Orchestrate discovery, dedup and insertion of new bills
"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence
import logging

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..adapters.base_adapter import utcnow
from ..adapters.legiscan_adapter import LegiScanAdapter
from ..config import PipelineConfig
from ..db.repositories.bill_repository import BillRepository
from ..db.repositories.fetch_log_repository import FetchLogRepository
from ..exceptions import SourceError
from ..models.analysis import IngestionReport, RunError
from ..models.bill import BillSummary

logger = logging.getLogger(__name__)

FETCH_LOG_SOURCE = "legiscan_ingestion"
MAX_LOGGED_ERRORS = 10


def year_bounds(year: int) -> tuple[date, date]:
    """Half-open [Jan 1 of year, Jan 1 of year + 1)"""
    return date(year, 1, 1), date(year + 1, 1, 1)


class IngestionPipeline:
    """
    Orchestrates one ingestion run.

    Per-session and per-bill failures are logged, recorded in the report
    and skipped; they never fail the run.

    Example:
        pipeline = IngestionPipeline(adapter, BillRepository(db), settings.pipeline)
        report = await pipeline.run(jurisdictions=["CA"], target_year=2025)
    """

    def __init__(
        self,
        adapter: LegiScanAdapter,
        bills: BillRepository,
        config: PipelineConfig,
        fetch_logs: Optional[FetchLogRepository] = None
    ):
        """
        Initialize ingestion pipeline.

        Args:
            adapter: LegiScan source adapter
            bills: Bill store
            config: Pipeline tuning (jurisdictions, year, cap)
            fetch_logs: Optional fetch log store for run monitoring
        """
        self.adapter = adapter
        self.bills = bills
        self.config = config
        self.fetch_logs = fetch_logs

    async def run(
        self,
        jurisdictions: Optional[Sequence[str]] = None,
        target_year: Optional[int] = None,
        target_count: Optional[int] = None,
        per_jurisdiction: Optional[bool] = None
    ) -> IngestionReport:
        """
        Run ingestion once.

        Arguments override the configured values for this run only.

        Returns:
            IngestionReport with inserted counts and per-item errors
        """
        start_time = utcnow()

        jurisdictions = [j.upper() for j in (jurisdictions or self.config.jurisdictions)]
        year = target_year or self.config.resolved_target_year()
        cap = target_count or self.config.target_count
        per_jurisdiction = (
            self.config.per_jurisdiction if per_jurisdiction is None else per_jurisdiction
        )

        logger.info(
            f"Starting ingestion: year={year}, jurisdictions={len(jurisdictions)}, "
            f"cap={cap}, per_jurisdiction={per_jurisdiction}"
        )

        report = IngestionReport(target_year=year)

        # Stage 1-2: discover candidates
        candidates = await self._collect_candidates(jurisdictions, year, report)

        # Stage 3: newest first
        candidates.sort(key=lambda c: c.status_date, reverse=True)
        report.candidates = len(candidates)
        logger.info(f"Collected {len(candidates)} candidates for {year}")

        # Stage 4: walk until capped
        inserted: Dict[str, int] = defaultdict(int)

        for candidate in candidates:
            state = candidate.jurisdiction or ""

            if per_jurisdiction:
                if inserted[state] >= cap:
                    continue
            elif report.inserted_count >= cap:
                break

            bill_id = await self._ingest_candidate(candidate, report)
            if bill_id is not None:
                inserted[state] += 1
                report.inserted_count += 1

        report.per_jurisdiction = dict(inserted)

        duration = (utcnow() - start_time).total_seconds()
        logger.info(
            f"Ingestion complete: inserted={report.inserted_count}, "
            f"skipped_existing={report.skipped_existing}, errors={len(report.errors)}, "
            f"duration={duration:.1f}s"
        )

        await self._write_fetch_log(report, duration, jurisdictions, cap, per_jurisdiction)
        return report

    async def _collect_candidates(
        self,
        jurisdictions: Sequence[str],
        year: int,
        report: IngestionReport
    ) -> List[BillSummary]:
        """List in-year master bills across all sessions covering the year"""
        start, end = year_bounds(year)
        candidates: List[BillSummary] = []
        seen: set[int] = set()

        for jurisdiction in jurisdictions:
            try:
                sessions = await self.adapter.list_sessions_covering_year(jurisdiction, year)
            except (httpx.HTTPError, SourceError) as e:
                logger.warning(f"Session list failed for {jurisdiction}: {e}")
                report.errors.append(RunError(
                    stage="sessions",
                    message=str(e),
                    jurisdiction=jurisdiction,
                ))
                continue

            for session in sessions:
                try:
                    summaries = await self.adapter.list_master_bills(
                        session.session_id,
                        jurisdiction=jurisdiction
                    )
                except (httpx.HTTPError, SourceError) as e:
                    logger.warning(
                        f"Master list failed for {jurisdiction} session={session.session_id}: {e}"
                    )
                    report.errors.append(RunError(
                        stage="master_list",
                        message=f"session {session.session_id}: {e}",
                        jurisdiction=jurisdiction,
                    ))
                    continue

                for summary in summaries:
                    if not start <= summary.status_date < end:
                        continue
                    if summary.external_id in seen:
                        continue
                    seen.add(summary.external_id)
                    candidates.append(summary)

        return candidates

    async def _ingest_candidate(
        self,
        candidate: BillSummary,
        report: IngestionReport
    ) -> Optional[int]:
        """Store one candidate if new; returns the new row id"""
        external_id = candidate.external_id

        try:
            already_stored = await self.bills.exists(external_id)
        except SQLAlchemyError as e:
            self._record_store_error(report, candidate, "exists", e)
            return None

        if already_stored:
            logger.debug(f"Bill {external_id} already stored, skipping")
            report.skipped_existing += 1
            return None

        response = await self.adapter.fetch(
            external_ids=[external_id],
            jurisdiction=candidate.jurisdiction
        )
        if not response.data:
            for error in response.errors:
                report.errors.append(RunError(
                    stage="detail",
                    message=error.message,
                    external_id=external_id,
                    jurisdiction=candidate.jurisdiction,
                ))
            return None

        try:
            bill_id = await self.bills.insert_bill(response.data[0])
        except SQLAlchemyError as e:
            self._record_store_error(report, candidate, "insert", e)
            return None

        if bill_id is None:
            # Lost a race with an overlapping run
            report.skipped_existing += 1
            return None

        logger.info(
            f"Inserted bill id={bill_id} external_id={external_id} "
            f"state={candidate.jurisdiction} date={candidate.status_date}"
        )
        return bill_id

    def _record_store_error(
        self,
        report: IngestionReport,
        candidate: BillSummary,
        stage: str,
        error: SQLAlchemyError
    ) -> None:
        logger.error(f"Store {stage} failed for bill {candidate.external_id}: {error}")
        report.errors.append(RunError(
            stage=stage,
            message=str(error),
            external_id=candidate.external_id,
            jurisdiction=candidate.jurisdiction,
        ))

    async def _write_fetch_log(
        self,
        report: IngestionReport,
        duration: float,
        jurisdictions: Sequence[str],
        cap: int,
        per_jurisdiction: bool
    ) -> None:
        if self.fetch_logs is None:
            return

        if not report.errors:
            status = "success"
        elif report.inserted_count:
            status = "partial"
        else:
            status = "failure"

        try:
            await self.fetch_logs.create_log(
                source=FETCH_LOG_SOURCE,
                status=status,
                records_attempted=report.inserted_count + len(report.errors),
                records_succeeded=report.inserted_count,
                records_failed=len(report.errors),
                duration_seconds=duration,
                fetch_params={
                    "target_year": report.target_year,
                    "jurisdictions": list(jurisdictions),
                    "target_count": cap,
                    "per_jurisdiction": per_jurisdiction,
                },
                error_count=len(report.errors),
                error_summary=[
                    e.model_dump(mode="json") for e in report.errors[:MAX_LOGGED_ERRORS]
                ] or None,
            )
        except SQLAlchemyError as e:
            logger.error(f"Could not write fetch log: {e}")
