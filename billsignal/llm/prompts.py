"""
Prompt construction for batched bill analysis.
"""

from datetime import date
from typing import Any, Dict, List, Protocol, Sequence
import json

from ..models.analysis import MAX_PREDICTIONS_PER_BILL, decision_date_bounds


class PromptBill(Protocol):
    external_id: int
    title: str
    description: str


RESPONSE_SCHEMA = """[
  {
    "legiscan_id": number,
    "passingLikelihood": number (0-1),
    "estimatedDecisionDate": "YYYY-MM-DD",
    "affectedStocks": [
      {
        "symbol": string,
        "companyName": string,
        "predictedDirection": "up" | "down",
        "confidence": number (0-1),
        "reasoning": string
      }
    ]
  }
]"""


def bill_payload(
    bills: Sequence[PromptBill],
    description_max_chars: int = 500
) -> List[Dict[str, Any]]:
    """Reduce bills to the fields the model sees, descriptions truncated"""
    return [
        {
            "legiscan_id": bill.external_id,
            "title": bill.title,
            "description": (bill.description or "")[:description_max_chars],
        }
        for bill in bills
    ]


def build_batch_prompt(
    bills: Sequence[PromptBill],
    run_date: date,
    description_max_chars: int = 500,
    max_stocks: int = MAX_PREDICTIONS_PER_BILL
) -> str:
    """
    Build the analysis prompt for one batch of bills.

    The prompt asks for a bare JSON array with one object per bill keyed by
    legiscan_id. Parsing does not rely on the model obeying it.
    """
    _, latest = decision_date_bounds(run_date)
    bills_json = json.dumps(bill_payload(bills, description_max_chars), ensure_ascii=False)

    return (
        "Analyze the following bills and return an array of JSON objects, one for "
        "each bill, in this exact JSON format without any extra text or code blocks. "
        f"For each bill, give me at most {max_stocks} affectedStocks.\n\n"
        f"Today is {run_date.isoformat()}. Every estimatedDecisionDate must be after "
        f"{run_date.isoformat()} and no later than {latest.isoformat()}.\n"
        'predictedDirection must be exactly "up" or "down", even when confidence is low.\n\n'
        f"Bills:\n{bills_json}\n\n"
        f"Schema:\n{RESPONSE_SCHEMA}\n\n"
        "Output only valid JSON. Do not wrap it in triple backticks or say anything else."
    )
