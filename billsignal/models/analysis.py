"""
Analysis models.

Strict shapes that untrusted model output is validated into, and the run
reports returned by the ingestion and analysis triggers.

Responsibility: Validated predictions and per-run reporting DTOs
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel


Direction = Literal["up", "down"]

MAX_PREDICTIONS_PER_BILL = 5


def one_year_after(day: date) -> date:
    """Same calendar day next year; Feb 29 maps to Feb 28"""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return day.replace(year=day.year + 1, day=28)


def decision_date_bounds(run_date: date) -> tuple[date, date]:
    """Exclusive lower and inclusive upper bound for an estimated decision date"""
    return run_date, one_year_after(run_date)


class StockPredictionInput(BaseModel):
    """
    One stock's predicted reaction, as validated from model output.

    Direction is total: only "up" or "down" survive validation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    symbol: str = Field(min_length=1, max_length=16)
    company_name: str = Field(
        default="",
        validation_alias=AliasChoices("companyName", "company_name"),
    )
    predicted_direction: Direction = Field(
        validation_alias=AliasChoices("predictedDirection", "predicted_direction"),
    )
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = Field(default="")

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v):
        if isinstance(v, str):
            return v.strip().lstrip("$").upper()
        return v

    @field_validator("predicted_direction", mode="before")
    @classmethod
    def normalize_direction(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("company_name", "reasoning", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class BillAnalysis(BaseModel):
    """
    One bill's analysis, as validated from model output.

    The decision-date bound is checked when a run_date is supplied in the
    validation context.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id: int = Field(
        validation_alias=AliasChoices("legiscan_id", "externalId", "external_id"),
    )
    passing_likelihood: float = Field(
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("passingLikelihood", "passing_likelihood"),
    )
    estimated_decision_date: date = Field(
        validation_alias=AliasChoices("estimatedDecisionDate", "estimated_decision_date"),
    )
    affected_stocks: List[StockPredictionInput] = Field(
        default_factory=list,
        validation_alias=AliasChoices("affectedStocks", "affected_stocks"),
    )

    @field_validator("estimated_decision_date")
    @classmethod
    def decision_date_within_horizon(cls, v: date, info: ValidationInfo) -> date:
        run_date = (info.context or {}).get("run_date")
        if run_date is None:
            return v
        lower, upper = decision_date_bounds(run_date)
        if not lower < v <= upper:
            raise ValueError(
                f"estimatedDecisionDate {v.isoformat()} outside "
                f"({lower.isoformat()}, {upper.isoformat()}]"
            )
        return v


class RunError(BaseModel):
    """A per-bill (or per-batch, per-jurisdiction) error entry in a run report"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    stage: str
    message: str
    external_id: Optional[int] = None
    bill_id: Optional[int] = None
    jurisdiction: Optional[str] = None


class AnalysisReport(BaseModel):
    """Result of one analysis run"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    processed_count: int = 0
    processed_ids: List[int] = Field(default_factory=list)
    errors: List[RunError] = Field(default_factory=list)
    batches: int = 0

    def to_response(self) -> Dict[str, Any]:
        """camelCase payload for the analysis trigger"""
        return self.model_dump(by_alias=True, exclude={"batches"})


class IngestionReport(BaseModel):
    """Result of one ingestion run"""

    success: bool = True
    inserted_count: int = 0
    per_jurisdiction: Dict[str, int] = Field(default_factory=dict)
    candidates: int = 0
    skipped_existing: int = 0
    target_year: Optional[int] = None
    errors: List[RunError] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        """snake_case payload for the ingestion trigger"""
        return self.model_dump(mode="json")
