"""
SQLAlchemy database models for BillSignal.

ORM models that map to database tables with proper indexing,
constraints, and relationships.

Responsibility: Define database schema and ORM mappings
"""

from datetime import date, datetime, timezone
from typing import Optional, List
from sqlalchemy import (
    String, Integer, Date, DateTime, Float, Text, JSON,
    ForeignKey, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class BillModel(Base):
    """
    Database model for legislative bills.

    affected_stock_ids IS NULL is the "not yet analyzed" sentinel; the
    three analysis columns are NULL together or set together.
    """

    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Natural key (LegiScan bill_id)
    external_id: Mapped[int] = mapped_column(Integer, nullable=False)
    jurisdiction: Mapped[Optional[str]] = mapped_column(String(8), nullable=True, index=True)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    sponsor_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    sponsor_party: Mapped[str] = mapped_column(String(50), nullable=False, default="None")
    sponsor_state: Mapped[str] = mapped_column(String(8), nullable=False, default="")

    introduced_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    last_action: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_action_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(50), nullable=False)
    chamber: Mapped[str] = mapped_column(String(10), nullable=False)
    document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Analysis fields (NULL until analyzed)
    passing_likelihood: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    estimated_decision_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    affected_stock_ids: Mapped[Optional[List[int]]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True
    )
    analysis_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    raw_source_data: Mapped[Optional[dict]] = mapped_column(
        JSON(none_as_null=True),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )

    predictions: Mapped[List["StockPredictionModel"]] = relationship(
        back_populates="bill",
        order_by="StockPredictionModel.id",
        lazy="raise"
    )

    __table_args__ = (
        UniqueConstraint('external_id', name='uq_bill_external_id'),
        Index('idx_bill_unanalyzed', 'id', 'analysis_attempts'),
        CheckConstraint(
            "chamber IN ('house', 'senate')",
            name='ck_bill_chamber'
        ),
        CheckConstraint(
            'passing_likelihood IS NULL OR (passing_likelihood >= 0 AND passing_likelihood <= 1)',
            name='ck_bill_passing_likelihood_range'
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BillModel(id={self.id}, "
            f"external_id={self.external_id}, "
            f"analyzed={self.affected_stock_ids is not None})>"
        )


class StockPredictionModel(Base):
    """
    Database model for one stock's predicted reaction to a bill.

    Rows are inserted once per analysis step and never mutated.
    """

    __tablename__ = "stock_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    bill_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    symbol: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    predicted_direction: Mapped[str] = mapped_column(String(4), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    reasoning: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=_utcnow
    )

    bill: Mapped[BillModel] = relationship(back_populates="predictions", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "predicted_direction IN ('up', 'down')",
            name='ck_prediction_direction'
        ),
        CheckConstraint(
            'confidence >= 0 AND confidence <= 1',
            name='ck_prediction_confidence_range'
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<StockPredictionModel(id={self.id}, bill_id={self.bill_id}, "
            f"symbol={self.symbol}, direction={self.predicted_direction})>"
        )


class FetchLogModel(Base):
    """
    Database model for tracking pipeline runs.

    One row per ingestion or analysis run, for monitoring and debugging.
    """

    __tablename__ = "fetch_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    records_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False)

    fetch_params: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_summary: Mapped[Optional[List[dict]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=_utcnow,
        index=True
    )

    __table_args__ = (
        Index('idx_fetch_log_source_status', 'source', 'status', 'created_at'),
    )

    def __repr__(self) -> str:
        return (
            f"<FetchLogModel(id={self.id}, "
            f"source={self.source}, "
            f"status={self.status})>"
        )
