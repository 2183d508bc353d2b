"""Test doubles for the LegiScan and Gemini HTTP APIs."""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional
import json

import httpx

from billsignal.config import (
    DatabaseConfig,
    GeminiConfig,
    LegiScanConfig,
    PipelineConfig,
    Settings,
)
from billsignal.models.bill import Bill, Sponsor

RUN_DATE = date(2025, 6, 1)


def make_settings(db_path, **pipeline_overrides: Any) -> Settings:
    """Settings pointing at a temp SQLite file with fake credentials"""
    pipeline = {"jurisdictions": ["CA"], "target_year": 2025}
    pipeline.update(pipeline_overrides)
    return Settings(
        db=DatabaseConfig(database_url=f"sqlite+aiosqlite:///{db_path}"),
        legiscan=LegiScanConfig(api_key="legiscan-test-key", throttle_ms=100),
        gemini=GeminiConfig(
            api_key="gemini-test-key",
            models=["gemini-2.0-flash", "gemini-1.5-flash"],
            base_delay_seconds=2.0,
        ),
        pipeline=PipelineConfig(**pipeline),
    )


def make_bill(external_id: int, introduced: date = date(2025, 3, 1), **overrides: Any) -> Bill:
    """Minimal normalized Bill for store tests"""
    fields = dict(
        external_id=external_id,
        jurisdiction="CA",
        title=f"Bill {external_id}",
        description=f"An act concerning item {external_id}",
        sponsor=Sponsor(name="Jane Doe", party="D", state="CA"),
        introduced_date=introduced,
        last_action="Read first time",
        last_action_date=introduced,
        status="Intro",
        chamber="house",
        document_url=f"https://legiscan.com/CA/bill/{external_id}",
        raw_source_data={"bill_id": external_id},
    )
    fields.update(overrides)
    return Bill(**fields)


def bill_detail(
    bill_id: int,
    state: str = "CA",
    status: int = 1,
    history: Optional[List[Dict[str, Any]]] = None,
    **overrides: Any
) -> Dict[str, Any]:
    """LegiScan getBill payload"""
    detail = {
        "bill_id": bill_id,
        "state": state,
        "title": f"Bill {bill_id}",
        "description": f"An act concerning item {bill_id}",
        "status": status,
        "status_date": "2025-05-01",
        "chamber": "H",
        "url": f"https://legiscan.com/{state}/bill/{bill_id}",
        "sponsors": [{"name": "Jane Doe", "party": "D"}],
        "history": history if history is not None else [
            {"date": "2025-05-01", "action": "Referred to committee", "importance": 0},
            {"date": "2025-02-10", "action": "Introduced", "importance": 1},
        ],
    }
    detail.update(overrides)
    return detail


class FakeLegiScan:
    """
    In-memory LegiScan API served through httpx.MockTransport.

    sessions: state -> list of session dicts
    masterlists: session_id -> list of {bill_id, status_date, number}
    bills: bill_id -> getBill payload (missing ids answer with an error status)
    """

    def __init__(
        self,
        sessions: Dict[str, List[Dict[str, Any]]],
        masterlists: Dict[int, List[Dict[str, Any]]],
        bills: Dict[int, Dict[str, Any]],
    ):
        self.sessions = sessions
        self.masterlists = masterlists
        self.bills = bills
        self.calls: List[tuple] = []
        self.failing_bill_ids: set = set()

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        op = params.get("op")
        self.calls.append((op, dict(params)))

        if op == "getSessionList":
            return httpx.Response(200, json={
                "status": "OK",
                "sessions": self.sessions.get(params.get("state"), []),
            })

        if op == "getMasterList":
            session_id = int(params["id"])
            masterlist: Dict[str, Any] = {"session": {"session_id": session_id}}
            for index, entry in enumerate(self.masterlists.get(session_id, [])):
                masterlist[str(index)] = entry
            return httpx.Response(200, json={"status": "OK", "masterlist": masterlist})

        if op == "getBill":
            bill_id = int(params["id"])
            if bill_id in self.failing_bill_ids:
                return httpx.Response(503, text="Service Unavailable")
            if bill_id not in self.bills:
                return httpx.Response(200, json={
                    "status": "ERROR",
                    "alert": {"message": "Unknown bill id"},
                })
            return httpx.Response(200, json={"status": "OK", "bill": self.bills[bill_id]})

        return httpx.Response(400, json={"status": "ERROR"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def gemini_text_response(text: str) -> httpx.Response:
    """generateContent envelope wrapping text"""
    return httpx.Response(200, json={
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}}
        ]
    })


def analysis_record(
    external_id: int,
    stocks: int = 5,
    decision_date: str = "2025-09-15",
    likelihood: float = 0.6
) -> Dict[str, Any]:
    """One analysis object as the model is asked to return it"""
    return {
        "legiscan_id": external_id,
        "passingLikelihood": likelihood,
        "estimatedDecisionDate": decision_date,
        "affectedStocks": [
            {
                "symbol": f"TK{external_id % 100}{i}",
                "companyName": f"Company {i}",
                "predictedDirection": "up" if i % 2 == 0 else "down",
                "confidence": 0.5 + i / 20,
                "reasoning": f"Reason {i}",
            }
            for i in range(stocks)
        ],
    }


class FakeGemini:
    """
    Scripted Gemini API served through httpx.MockTransport.

    Responses are queued per model and consumed in order; a model with an
    empty queue answers 500.
    """

    def __init__(self):
        self.scripts: Dict[str, List[httpx.Response]] = defaultdict(list)
        self.calls: List[str] = []
        self.bodies: List[Dict[str, Any]] = []
        self.params: List[Dict[str, str]] = []

    def queue(self, model: str, *responses: httpx.Response) -> None:
        self.scripts[model].extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        model = request.url.path.rsplit("/", 1)[-1].split(":")[0]
        self.calls.append(model)
        self.bodies.append(json.loads(request.content))
        self.params.append(dict(request.url.params))

        script = self.scripts[model]
        if not script:
            return httpx.Response(500, json={"error": {"message": "no scripted response"}})
        return script.pop(0)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    """Awaitable sleep that records delays instead of waiting"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)
