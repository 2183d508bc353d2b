"""
Bill domain model.

Represents a legislative bill as normalized from LegiScan, before it is
stored. Analysis fields are absent here on purpose: a freshly ingested bill
is always unanalyzed.

Responsibility: Canonical bill record plus the source's lightweight listings
"""

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


Chamber = Literal["house", "senate"]

# LegiScan numeric status -> display label
STATUS_LABELS: Dict[int, str] = {
    0: "Pre-Filed",
    1: "Intro",
    2: "Engross",
    3: "Enroll",
    4: "Pass",
    5: "Vetoed",
    6: "Failed",
    7: "Overrated",
    8: "Chaptered",
    9: "Refer",
    10: "Report Pass",
    11: "Report DNS",
    12: "Draft",
}

DEFAULT_STATUS_LABEL = "Veto"
UNKNOWN_STATUS_LABEL = "Unknown"
NO_PARTY = "None"


def status_label(code: Any, default: str = DEFAULT_STATUS_LABEL) -> str:
    """Map a LegiScan status code to its label, falling back to default"""
    try:
        return STATUS_LABELS.get(int(code), default)
    except (TypeError, ValueError):
        return default


def chamber_from_code(code: Optional[str]) -> Chamber:
    """LegiScan body code: 'H' is the house, everything else the senate"""
    return "house" if code == "H" else "senate"


def parse_iso_date(value: Any) -> Optional[date]:
    """
    Parse a LegiScan date or datetime string to a date.

    Example: "2024-03-15" -> date(2024, 3, 15)
             "2024-03-15T10:00:00" -> date(2024, 3, 15)
             "0000-00-00" -> None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except ValueError:
        return None


class Sponsor(BaseModel):
    """Primary sponsor of a bill"""

    name: str = ""
    party: str = NO_PARTY
    state: str = ""

    @field_validator("party", mode="before")
    @classmethod
    def default_blank_party(cls, v):
        """Blank or non-string parties collapse to the 'None' sentinel"""
        if isinstance(v, str) and v.strip():
            return v
        return NO_PARTY


class Bill(BaseModel):
    """
    Canonical bill record ready for insertion.

    Natural key: external_id (LegiScan bill_id)
    """

    model_config = ConfigDict(frozen=True)

    external_id: int = Field(description="LegiScan bill_id; unique dedup key")
    jurisdiction: Optional[str] = Field(
        default=None,
        description="Two-letter state code the bill was discovered under"
    )
    title: str = Field(default="")
    description: str = Field(default="")
    sponsor: Sponsor = Field(default_factory=Sponsor)

    introduced_date: date = Field(description="Derived introduction date")
    last_action: str = Field(description="Most recent history action")
    last_action_date: Optional[date] = Field(default=None)

    status: str = Field(default=DEFAULT_STATUS_LABEL)
    chamber: Chamber = Field(default="senate")
    document_url: Optional[str] = Field(default=None)

    raw_source_data: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Full LegiScan detail payload, kept for reprocessing"
    )


class LegislativeSession(BaseModel):
    """A legislative session as listed by the source"""

    session_id: int
    jurisdiction: str
    year_start: int
    year_end: int
    name: Optional[str] = None

    def covers_year(self, year: int) -> bool:
        """Whether [year_start, year_end] includes year"""
        return self.year_start <= year <= self.year_end


class BillSummary(BaseModel):
    """Master-list entry: enough to pick candidates without a detail fetch"""

    external_id: int
    status_date: date
    jurisdiction: Optional[str] = None
    number: Optional[str] = None
