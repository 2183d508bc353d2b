"""
Model output parsing and validation.

Untrusted model text crosses two stages: a loose structural parse into
dicts, then pydantic validation into BillAnalysis. A record that fails the
second stage is dropped on its own; only a failure of the first stage fails
the batch.

Responsibility: Turn raw model text into validated, matched analyses
"""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar
import json
import logging
import re

from pydantic import ValidationError

from ..exceptions import ModelOutputParseError
from ..models.analysis import (
    MAX_PREDICTIONS_PER_BILL,
    BillAnalysis,
    StockPredictionInput,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JSON_TAG_RE = re.compile(r"^json\s*", re.IGNORECASE)

_STOCK_KEYS = ("affectedStocks", "affected_stocks")


class HasExternalId(Protocol):
    external_id: int


B = TypeVar("B", bound=HasExternalId)


def strip_fences(text: str) -> str:
    """
    Remove markdown code fences and a leading "json" tag.

    Example:
        >>> strip_fences('```json\\n[{"a": 1}]\\n```')
        '[{"a": 1}]'
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    return _JSON_TAG_RE.sub("", cleaned).strip()


def parse_model_output(text: str) -> List[Dict[str, Any]]:
    """
    Structurally parse model text into a list of JSON objects.

    A single top-level object is wrapped into a one-element list.
    Non-object array elements are dropped.

    Raises:
        ModelOutputParseError: Text is not JSON, or not an object or array
    """
    cleaned = strip_fences(text or "")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Model output is not valid JSON ({e}). Raw text: {text!r}")
        raise ModelOutputParseError(f"Model output is not valid JSON: {e}", raw_text=text) from e

    if isinstance(data, dict):
        data = [data]

    if not isinstance(data, list):
        logger.error(f"Model output is {type(data).__name__}, not an array. Raw text: {text!r}")
        raise ModelOutputParseError(
            f"Expected a JSON array, got {type(data).__name__}",
            raw_text=text
        )

    records = [item for item in data if isinstance(item, dict)]
    if len(records) < len(data):
        logger.warning(f"Dropped {len(data) - len(records)} non-object entries from model output")

    return records


def _validate_stocks(raw_stocks: Any, external_id: Any) -> List[StockPredictionInput]:
    if raw_stocks is None:
        return []
    if not isinstance(raw_stocks, list):
        logger.warning(f"Bill {external_id}: affectedStocks is not a list, ignoring it")
        return []

    stocks: List[StockPredictionInput] = []
    for raw_stock in raw_stocks:
        try:
            stocks.append(StockPredictionInput.model_validate(raw_stock))
        except ValidationError as e:
            logger.warning(
                f"Bill {external_id}: dropping invalid stock prediction "
                f"{raw_stock!r}: {e.error_count()} validation error(s)"
            )
    return stocks


def validate_analyses(
    records: Sequence[Dict[str, Any]],
    run_date: date,
    max_stocks: int = MAX_PREDICTIONS_PER_BILL
) -> List[BillAnalysis]:
    """
    Validate loose records into BillAnalysis, one record at a time.

    Invalid stocks are dropped from their bill; an invalid bill-level field
    drops the whole record. Surviving stocks are truncated to max_stocks.
    """
    analyses: List[BillAnalysis] = []

    for record in records:
        raw_stocks = next((record[k] for k in _STOCK_KEYS if k in record), None)
        bill_fields = {k: v for k, v in record.items() if k not in _STOCK_KEYS}
        external_id = record.get("legiscan_id", record.get("externalId"))

        try:
            analysis = BillAnalysis.model_validate(
                bill_fields,
                context={"run_date": run_date}
            )
        except ValidationError as e:
            logger.warning(f"Dropping analysis for bill {external_id}: {e}")
            continue

        stocks = _validate_stocks(raw_stocks, analysis.external_id)
        if len(stocks) > max_stocks:
            logger.warning(
                f"Bill {analysis.external_id}: {len(stocks)} stocks returned, "
                f"keeping first {max_stocks}"
            )
            stocks = stocks[:max_stocks]

        analyses.append(analysis.model_copy(update={"affected_stocks": stocks}))

    return analyses


def match_analyses(
    bills: Sequence[B],
    analyses: Sequence[BillAnalysis]
) -> Tuple[List[Tuple[B, BillAnalysis]], List[B]]:
    """
    Pair each bill with the analysis carrying its external_id.

    Returns:
        (matched pairs in bill order, unmatched bills)
    """
    by_external_id: Dict[int, BillAnalysis] = {}
    for analysis in analyses:
        if analysis.external_id in by_external_id:
            logger.warning(f"Duplicate analysis for bill {analysis.external_id}, keeping the first")
            continue
        by_external_id[analysis.external_id] = analysis

    matched: List[Tuple[B, BillAnalysis]] = []
    unmatched: List[B] = []

    for bill in bills:
        analysis: Optional[BillAnalysis] = by_external_id.pop(bill.external_id, None)
        if analysis is None:
            logger.warning(f"No analysis returned for bill {bill.external_id}")
            unmatched.append(bill)
        else:
            matched.append((bill, analysis))

    if by_external_id:
        logger.warning(
            f"Ignoring analyses for bills not in the batch: {sorted(by_external_id)}"
        )

    return matched, unmatched
