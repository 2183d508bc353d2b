import json
from datetime import date, timedelta

import httpx
import pytest

from billsignal.api.main import app
from billsignal.services.pipeline_service import PipelineService

from fakes import (
    FakeGemini,
    FakeLegiScan,
    RecordingSleep,
    analysis_record,
    bill_detail,
    gemini_text_response,
    make_bill,
)


@pytest.fixture
def legiscan():
    return FakeLegiScan(
        sessions={"CA": [{"session_id": 10, "year_start": 2025, "year_end": 2026}]},
        masterlists={10: [
            {"bill_id": 1, "status_date": "2025-03-01"},
            {"bill_id": 2, "status_date": "2025-04-01"},
        ]},
        bills={1: bill_detail(1), 2: bill_detail(2)},
    )


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture
async def client(settings, db, legiscan, gemini):
    app.state.pipeline = PipelineService(
        settings,
        database=db,
        legiscan_transport=legiscan.transport(),
        gemini_transport=gemini.transport(),
        sleep=RecordingSleep(),
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def test_health(client) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "billsignal-api"}


async def test_ingest_trigger_returns_report(client, bill_repo) -> None:
    response = await client.post("/api/v1/ingest", params={"target_year": 2025, "target_count": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["inserted_count"] == 2
    assert body["per_jurisdiction"] == {"CA": 2}
    assert await bill_repo.count() == 2


async def test_ingest_without_credentials_fails_whole_request(client, settings, legiscan) -> None:
    settings.legiscan.api_key = None

    response = await client.post("/api/v1/ingest")

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "LEGISCAN_API_KEY" in response.json()["error"]
    assert legiscan.calls == []


async def test_analyze_trigger_returns_camel_case_report(client, bill_repo, gemini) -> None:
    await bill_repo.insert_bill(make_bill(101))
    await bill_repo.insert_bill(make_bill(102))
    decision_date = (date.today() + timedelta(days=60)).isoformat()
    gemini.queue("gemini-2.0-flash", gemini_text_response(json.dumps([
        analysis_record(101, decision_date=decision_date),
        analysis_record(102, decision_date=decision_date),
    ])))

    response = await client.post("/api/v1/analyze")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["processedCount"] == 2
    assert body["processedIds"] == [101, 102]
    assert body["errors"] == []


async def test_analyze_without_credentials_fails(client, settings, gemini) -> None:
    settings.gemini.api_key = None

    response = await client.post("/api/v1/analyze")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Missing required environment variable: GEMINI_API_KEY",
    }
    assert gemini.calls == []


async def test_bills_endpoint_ingests_empty_store(client, legiscan) -> None:
    response = await client.get("/api/v1/bills")

    assert response.status_code == 200
    bills = response.json()
    assert len(bills) == 2
    assert legiscan.count("getBill") == 2
    assert set(bills[0]) >= {
        "id", "title", "description", "sponsor", "introducedDate", "lastAction",
        "lastActionDate", "estimatedDecisionDate", "passingLikelihood", "status",
        "chamber", "documentUrl", "affectedStocks",
    }
    assert bills[0]["affectedStocks"] == []
    assert isinstance(bills[0]["id"], str)


async def test_bills_endpoint_serves_stored_bills(client, bill_repo, legiscan) -> None:
    await bill_repo.insert_bill(make_bill(7, introduced=date(2025, 1, 1)))
    await bill_repo.insert_bill(make_bill(8, introduced=date(2025, 2, 1)))

    response = await client.get("/api/v1/bills", params={"limit": 1})

    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Bill 8"]
    assert legiscan.calls == []
