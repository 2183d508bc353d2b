"""
Repository for bill data operations.

Implements the repository pattern for bills: natural-key existence
checks, dedup-safe inserts, selection of unanalyzed rows and the single-row
analysis update.

Responsibility: Abstract database operations for bills
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
from sqlalchemy import select, update, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
import logging

from ..models import BillModel
from ..session import Database
from ...models.bill import Bill

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoredBill:
    """The slice of a stored bill the analysis step needs"""

    id: int
    external_id: int
    title: str
    description: str
    analysis_attempts: int = 0


class BillRepository:
    """
    Repository for bill data persistence.

    Every operation runs in its own session and transaction, so a failure
    in one never rolls back another.

    Example:
        repo = BillRepository(db)

        if not await repo.exists(1234567):
            bill_id = await repo.insert_bill(bill)

        pending = await repo.select_unanalyzed(limit=50)
    """

    def __init__(self, db: Database):
        """
        Initialize repository with database instance.

        Args:
            db: Initialized Database
        """
        self.db = db

    async def exists(self, external_id: int) -> bool:
        """Whether a bill with this LegiScan id is already stored"""
        async with self.db.session() as session:
            result = await session.execute(
                select(BillModel.id)
                .where(BillModel.external_id == external_id)
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def insert_bill(self, bill: Bill) -> Optional[int]:
        """
        Insert a new, unanalyzed bill.

        Returns:
            The new row id, or None when another writer already stored the
            same external_id
        """
        try:
            async with self.db.session() as session:
                model = self._domain_to_model(bill)
                session.add(model)
                await session.flush()  # Get ID without committing
                bill_id = model.id
        except IntegrityError as e:
            logger.warning(
                f"Bill {bill.external_id} already stored, skipping insert: {e.orig}"
            )
            return None

        logger.debug(f"Inserted bill {bill.external_id} as id={bill_id}")
        return bill_id

    async def select_unanalyzed(
        self,
        limit: Optional[int] = None,
        max_attempts: Optional[int] = None
    ) -> List[StoredBill]:
        """
        Select bills that have never been successfully analyzed.

        Args:
            limit: Maximum rows to return
            max_attempts: Exclude bills with at least this many failed attempts

        Returns:
            Bills ordered by id ascending
        """
        query = (
            select(
                BillModel.id,
                BillModel.external_id,
                BillModel.title,
                BillModel.description,
                BillModel.analysis_attempts,
            )
            .where(BillModel.affected_stock_ids.is_(None))
            .order_by(BillModel.id)
        )

        if max_attempts is not None:
            query = query.where(BillModel.analysis_attempts < max_attempts)

        if limit is not None:
            query = query.limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return [
                StoredBill(
                    id=row.id,
                    external_id=row.external_id,
                    title=row.title or "",
                    description=row.description or "",
                    analysis_attempts=row.analysis_attempts,
                )
                for row in result.all()
            ]

    async def update_analysis(
        self,
        bill_id: int,
        passing_likelihood: float,
        estimated_decision_date: date,
        affected_stock_ids: Sequence[int]
    ) -> bool:
        """
        Set the three analysis fields of one bill together.

        The row is only touched while its sentinel is still NULL, so a bill
        is analyzed at most once even when runs overlap.

        Returns:
            True if the row was updated, False if it was missing or already analyzed
        """
        async with self.db.session() as session:
            result = await session.execute(
                update(BillModel)
                .where(
                    BillModel.id == bill_id,
                    BillModel.affected_stock_ids.is_(None),
                )
                .values(
                    passing_likelihood=passing_likelihood,
                    estimated_decision_date=estimated_decision_date,
                    affected_stock_ids=list(affected_stock_ids),
                )
            )
            return result.rowcount == 1

    async def record_failed_attempt(self, bill_ids: Sequence[int]) -> int:
        """Increment analysis_attempts for bills that stayed unanalyzed"""
        if not bill_ids:
            return 0

        async with self.db.session() as session:
            result = await session.execute(
                update(BillModel)
                .where(BillModel.id.in_(list(bill_ids)))
                .values(analysis_attempts=BillModel.analysis_attempts + 1)
            )
            return result.rowcount

    async def count(self) -> int:
        """Total number of stored bills"""
        async with self.db.session() as session:
            result = await session.execute(select(func.count(BillModel.id)))
            return result.scalar_one()

    async def list_with_predictions(self, limit: Optional[int] = None) -> List[BillModel]:
        """
        Get stored bills with their predictions loaded.

        Returns bills ordered by introduced_date DESC (latest first).
        """
        query = (
            select(BillModel)
            .options(selectinload(BillModel.predictions))
            .order_by(desc(BillModel.introduced_date), desc(BillModel.id))
        )
        if limit is not None:
            query = query.limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    def _domain_to_model(self, bill: Bill) -> BillModel:
        """Convert Bill domain model to a new, unanalyzed BillModel"""
        return BillModel(
            external_id=bill.external_id,
            jurisdiction=bill.jurisdiction,
            title=bill.title,
            description=bill.description,
            sponsor_name=bill.sponsor.name,
            sponsor_party=bill.sponsor.party,
            sponsor_state=bill.sponsor.state,
            introduced_date=bill.introduced_date,
            last_action=bill.last_action,
            last_action_date=bill.last_action_date,
            status=bill.status,
            chamber=bill.chamber,
            document_url=bill.document_url,
            raw_source_data=bill.raw_source_data,
            affected_stock_ids=None,
            analysis_attempts=0,
        )
