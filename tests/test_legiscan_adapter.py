import time
from datetime import date

import httpx
import pytest

from billsignal.adapters.legiscan_adapter import (
    LegiScanAdapter,
    derive_introduced_date,
    derive_last_action,
)
from billsignal.config import LegiScanConfig
from billsignal.exceptions import SourceResponseError
from billsignal.models.adapter_models import AdapterStatus

from fakes import FakeLegiScan, bill_detail


def _adapter(fake: FakeLegiScan, throttle_ms: int = 100) -> LegiScanAdapter:
    return LegiScanAdapter(
        LegiScanConfig(api_key="k", throttle_ms=throttle_ms),
        transport=fake.transport(),
    )


def test_introduced_date_prefers_earliest_important_entry() -> None:
    raw = {
        "history": [
            {"date": "2025-04-01", "action": "Passed", "importance": 1},
            {"date": "2025-03-01", "action": "Amended", "importance": 0},
            {"date": "2025-02-01", "action": "Introduced", "importance": 1},
            {"date": "2025-01-15", "action": "Pre-filed", "importance": 0},
        ]
    }

    assert derive_introduced_date(raw) == date(2025, 2, 1)


def test_introduced_date_uses_full_history_when_nothing_important() -> None:
    raw = {
        "history": [
            {"date": "2025-04-01", "action": "Read", "importance": 0},
            {"date": "2025-01-15", "action": "Filed", "importance": 0},
        ]
    }

    assert derive_introduced_date(raw) == date(2025, 1, 15)


def test_introduced_date_falls_back_to_source_fields_then_today() -> None:
    assert derive_introduced_date({"history": [], "introduced_date": "2025-03-03"}) == date(2025, 3, 3)
    assert derive_introduced_date({"introduced": "2025-03-04T12:30:00"}) == date(2025, 3, 4)
    assert derive_introduced_date({}, today=date(2025, 6, 1)) == date(2025, 6, 1)


def test_last_action_from_history_or_synthesized_from_status() -> None:
    assert derive_last_action({"history": [{"action": "Signed by Governor"}]}) == "Signed by Governor"
    assert derive_last_action({"history": [], "status": 4}) == "Went into Pass"
    assert derive_last_action({"status": 99}) == "Went into Unknown"


def test_normalize_applies_field_rules() -> None:
    adapter = _adapter(FakeLegiScan({}, {}, {}))
    raw = bill_detail(
        42,
        status=99,
        chamber="S",
        sponsors=[{"name": "Sam Smith", "party": "  "}],
    )

    bill = adapter.normalize(raw, jurisdiction="CA")

    assert bill.external_id == 42
    assert bill.status == "Veto"
    assert bill.chamber == "senate"
    assert bill.sponsor.name == "Sam Smith"
    assert bill.sponsor.party == "None"
    assert bill.sponsor.state == "CA"
    assert bill.last_action_date == date(2025, 5, 1)
    assert bill.document_url == "https://legiscan.com/CA/bill/42"
    assert bill.introduced_date == date(2025, 2, 10)
    assert bill.raw_source_data == raw


def test_normalize_house_bill_without_sponsors() -> None:
    adapter = _adapter(FakeLegiScan({}, {}, {}))

    bill = adapter.normalize(bill_detail(7, sponsors=[], status=2), jurisdiction="TX")

    assert bill.chamber == "house"
    assert bill.status == "Engross"
    assert bill.sponsor.name == ""
    assert bill.sponsor.party == "None"


def test_normalize_rejects_missing_bill_id() -> None:
    adapter = _adapter(FakeLegiScan({}, {}, {}))

    with pytest.raises(ValueError):
        adapter.normalize({"title": "No id"})


async def test_sessions_filtered_to_target_year() -> None:
    fake = FakeLegiScan(
        sessions={"CA": [
            {"session_id": 1, "year_start": 2023, "year_end": 2024, "session_name": "2023-2024"},
            {"session_id": 2, "year_start": 2025, "year_end": 2026, "session_name": "2025-2026"},
            {"session_id": 3, "year_start": 2025, "year_end": 2025, "session_name": "2025 Special"},
        ]},
        masterlists={},
        bills={},
    )
    adapter = _adapter(fake)

    sessions = await adapter.list_sessions_covering_year("CA", 2025)
    await adapter.close()

    assert [s.session_id for s in sessions] == [2, 3]
    assert fake.calls[0][1]["key"] == "k"
    assert fake.calls[0][1]["state"] == "CA"


async def test_master_list_drops_metadata_and_invalid_entries() -> None:
    fake = FakeLegiScan(
        sessions={},
        masterlists={10: [
            {"bill_id": 1, "status_date": "2025-03-01", "number": "AB1"},
            {"bill_id": "2", "status_date": "2025-03-01"},
            {"bill_id": 3, "status_date": None},
            {"bill_id": 4, "status_date": "2025-04-01", "number": "SB4"},
        ]},
        bills={},
    )
    adapter = _adapter(fake)

    summaries = await adapter.list_master_bills(10, jurisdiction="CA")
    await adapter.close()

    assert [s.external_id for s in summaries] == [1, 4]
    assert summaries[1].status_date == date(2025, 4, 1)
    assert summaries[1].jurisdiction == "CA"


async def test_non_ok_status_raises_source_response_error() -> None:
    adapter = _adapter(FakeLegiScan({}, {}, {}))

    with pytest.raises(SourceResponseError, match="Unknown bill id"):
        await adapter.fetch_bill_detail(123)
    await adapter.close()


async def test_http_error_status_raises() -> None:
    fake = FakeLegiScan({}, {}, {5: bill_detail(5)})
    fake.failing_bill_ids.add(5)
    adapter = _adapter(fake)

    with pytest.raises(httpx.HTTPStatusError):
        await adapter.fetch_bill_detail(5)
    await adapter.close()


async def test_fetch_isolates_failing_bills() -> None:
    fake = FakeLegiScan({}, {}, {1: bill_detail(1), 3: bill_detail(3)})
    adapter = _adapter(fake)

    response = await adapter.fetch(external_ids=[1, 2, 3], jurisdiction="CA")
    await adapter.close()

    assert response.status == AdapterStatus.PARTIAL_SUCCESS
    assert [b.external_id for b in response.data] == [1, 3]
    assert len(response.errors) == 1
    assert response.errors[0].context["external_id"] == 2
    assert response.metrics.records_attempted == 3


async def test_calls_are_spaced_by_throttle_interval() -> None:
    fake = FakeLegiScan({}, {}, {1: bill_detail(1), 2: bill_detail(2), 3: bill_detail(3)})
    adapter = _adapter(fake, throttle_ms=100)

    start = time.monotonic()
    for bill_id in (1, 2, 3):
        await adapter.fetch_bill_detail(bill_id)
    elapsed = time.monotonic() - start
    await adapter.close()

    # First call is free, the next two wait one interval each
    assert elapsed >= 0.19
    assert adapter.rate_limiter.wait_count == 2
