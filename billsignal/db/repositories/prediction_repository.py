"""
Repository for stock prediction rows.

Responsibility: Batch-insert predictions for one analyzed bill
"""

from typing import List, Sequence
import logging

from ..models import StockPredictionModel
from ..session import Database
from ...models.analysis import StockPredictionInput

logger = logging.getLogger(__name__)


class PredictionRepository:
    """Repository for prediction persistence."""

    def __init__(self, db: Database):
        self.db = db

    async def insert_predictions(
        self,
        bill_id: int,
        predictions: Sequence[StockPredictionInput]
    ) -> List[int]:
        """
        Insert all predictions for a bill in one transaction.

        The ids are returned only after the transaction commits, in the
        same order as the input.

        Args:
            bill_id: Internal id of the bill the predictions belong to
            predictions: Validated predictions (already truncated)

        Returns:
            New prediction ids in insertion order
        """
        if not predictions:
            return []

        async with self.db.session() as session:
            models = [
                StockPredictionModel(
                    bill_id=bill_id,
                    symbol=p.symbol,
                    company_name=p.company_name,
                    predicted_direction=p.predicted_direction,
                    confidence=p.confidence,
                    reasoning=p.reasoning,
                )
                for p in predictions
            ]
            session.add_all(models)
            await session.flush()
            ids = [m.id for m in models]

        logger.debug(f"Inserted {len(ids)} predictions for bill id={bill_id}")
        return ids
