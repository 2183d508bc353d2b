"""
Read projection for stored bills.

Maps stored bill rows and their predictions to the frontend shape. When
the store is empty, ingestion runs once and the store is queried again.

Responsibility: Serve stored bills in the frontend shape
"""

from typing import Any, Awaitable, Callable, List, Optional
import logging

from ..db.models import BillModel
from ..db.repositories.bill_repository import BillRepository
from ..models.projection import AffectedStockResponse, BillResponse, SponsorResponse

logger = logging.getLogger(__name__)


def project_bill(model: BillModel) -> BillResponse:
    """
    Project one stored bill.

    Only predictions referenced by affected_stock_ids are shown, in that
    order; orphans left by a failed bill update stay hidden.
    """
    referenced = model.affected_stock_ids or []
    by_id = {p.id: p for p in model.predictions}
    predictions = [by_id[pid] for pid in referenced if pid in by_id]

    return BillResponse(
        id=str(model.id),
        title=model.title,
        description=model.description,
        sponsor=SponsorResponse(
            name=model.sponsor_name,
            party=model.sponsor_party,
            state=model.sponsor_state,
        ),
        introduced_date=model.introduced_date,
        last_action=model.last_action,
        last_action_date=model.last_action_date,
        estimated_decision_date=model.estimated_decision_date,
        passing_likelihood=model.passing_likelihood,
        status=model.status,
        chamber=model.chamber,
        document_url=model.document_url,
        affected_stocks=[
            AffectedStockResponse(
                symbol=p.symbol,
                company_name=p.company_name,
                predicted_direction=p.predicted_direction,
                confidence=p.confidence,
                reasoning=p.reasoning,
            )
            for p in predictions
        ],
    )


class BillReadService:
    """
    Serves the bill list to the frontend.

    Example:
        service = BillReadService(BillRepository(db), ingest=pipeline_service.ingest)
        bills = await service.list_bills()
    """

    def __init__(
        self,
        bills: BillRepository,
        ingest: Optional[Callable[[], Awaitable[Any]]] = None
    ):
        """
        Args:
            bills: Bill store
            ingest: Ingestion run used to populate an empty store
        """
        self.bills = bills
        self.ingest = ingest

    async def list_bills(self, limit: Optional[int] = None) -> List[BillResponse]:
        """Stored bills, newest introduced_date first"""
        if self.ingest is not None and await self.bills.count() == 0:
            logger.info("No bills stored, running ingestion before serving")
            await self.ingest()

        models = await self.bills.list_with_predictions(limit=limit)
        return [project_bill(model) for model in models]
