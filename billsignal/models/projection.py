"""
Read-projection models.

The shape served to the frontend: camelCase keys, sponsor nested, and the
predictions a bill references inlined as affectedStocks.

Responsibility: Bill read-projection schemas
"""

from typing import List, Literal, Optional
from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SponsorResponse(_CamelModel):
    """Primary sponsor of a bill."""

    name: str
    party: str
    state: str


class AffectedStockResponse(_CamelModel):
    """One stock prediction attached to a bill."""

    symbol: str
    company_name: str
    predicted_direction: Literal["up", "down"]
    confidence: float
    reasoning: str


class BillResponse(_CamelModel):
    """Bill as shown to the frontend, with its predictions."""

    id: str
    title: str
    description: str
    sponsor: SponsorResponse
    introduced_date: date
    last_action: str
    last_action_date: Optional[date] = None
    estimated_decision_date: Optional[date] = None
    passing_likelihood: Optional[float] = None
    status: str
    chamber: Literal["house", "senate"]
    document_url: Optional[str] = None
    affected_stocks: List[AffectedStockResponse] = Field(default_factory=list)
