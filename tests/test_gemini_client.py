import json

import httpx
import pytest

from billsignal.config import GeminiConfig
from billsignal.exceptions import ModelOutputParseError, ModelUnavailableError
from billsignal.llm.gemini_client import GeminiPredictionClient, extract_text

from fakes import (
    RUN_DATE,
    FakeGemini,
    RecordingSleep,
    analysis_record,
    gemini_text_response,
    make_bill,
)


def _client(fake: FakeGemini, sleep: RecordingSleep, **config) -> GeminiPredictionClient:
    return GeminiPredictionClient(
        GeminiConfig(
            api_key="secret",
            models=["gemini-2.0-flash", "gemini-1.5-flash"],
            base_delay_seconds=2.0,
            **config,
        ),
        transport=fake.transport(),
        sleep=sleep,
    )


def _bills():
    return [make_bill(101), make_bill(102), make_bill(103)]


def test_extract_text_handles_missing_candidates() -> None:
    assert extract_text({"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}) == "hi"
    assert extract_text({"candidates": []}) is None
    assert extract_text({}) is None


async def test_request_shape_and_parsed_result() -> None:
    fake = FakeGemini()
    records = [analysis_record(101), analysis_record(102), analysis_record(103)]
    fake.queue("gemini-2.0-flash", gemini_text_response(json.dumps(records)))
    sleep = RecordingSleep()
    client = _client(fake, sleep, max_output_tokens=4096)

    analyses = await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()

    assert [a.external_id for a in analyses] == [101, 102, 103]
    assert all(len(a.affected_stocks) == 5 for a in analyses)

    body = fake.bodies[0]
    assert body["contents"][0]["role"] == "user"
    assert '"legiscan_id": 101' in body["contents"][0]["parts"][0]["text"]
    assert body["generationConfig"] == {"temperature": 0.0, "maxOutputTokens": 4096}
    assert fake.params[0]["key"] == "secret"
    assert sleep.delays == []


async def test_falls_back_to_next_model_after_overload() -> None:
    fake = FakeGemini()
    overloaded = [httpx.Response(503, json={"error": {"message": "overloaded"}}) for _ in range(3)]
    fake.queue("gemini-2.0-flash", *overloaded)
    fake.queue(
        "gemini-1.5-flash",
        gemini_text_response(json.dumps([analysis_record(101), analysis_record(102), analysis_record(103)])),
    )
    sleep = RecordingSleep()
    client = _client(fake, sleep)

    analyses = await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()

    assert len(analyses) == 3
    assert fake.calls == ["gemini-2.0-flash"] * 3 + ["gemini-1.5-flash"]
    # Two backoffs on the first model: 2s and 4s, each with up to 20% jitter
    assert len(sleep.delays) == 2
    assert 2.0 <= sleep.delays[0] <= 2.4
    assert 4.0 <= sleep.delays[1] <= 4.8
    assert 6.0 <= sleep.total <= 7.2


async def test_non_transient_error_skips_straight_to_next_model() -> None:
    fake = FakeGemini()
    fake.queue("gemini-2.0-flash", httpx.Response(403, json={"error": {"message": "forbidden"}}))
    fake.queue("gemini-1.5-flash", gemini_text_response(json.dumps(analysis_record(101))))
    sleep = RecordingSleep()
    client = _client(fake, sleep)

    analyses = await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()

    assert [a.external_id for a in analyses] == [101]
    assert fake.calls == ["gemini-2.0-flash", "gemini-1.5-flash"]
    assert sleep.delays == []


async def test_all_models_exhausted_raises_model_unavailable() -> None:
    fake = FakeGemini()
    sleep = RecordingSleep()
    client = _client(fake, sleep)

    with pytest.raises(ModelUnavailableError) as exc_info:
        await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()

    assert set(exc_info.value.attempts) == {"gemini-2.0-flash", "gemini-1.5-flash"}
    assert len(fake.calls) == 6


async def test_unparseable_text_raises_parse_error() -> None:
    fake = FakeGemini()
    fake.queue("gemini-2.0-flash", gemini_text_response("I cannot help with that."))
    client = _client(fake, RecordingSleep())

    with pytest.raises(ModelOutputParseError) as exc_info:
        await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()

    assert exc_info.value.raw_text == "I cannot help with that."


async def test_empty_candidates_raise_parse_error() -> None:
    fake = FakeGemini()
    fake.queue("gemini-2.0-flash", httpx.Response(200, json={"candidates": []}))
    client = _client(fake, RecordingSleep())

    with pytest.raises(ModelOutputParseError):
        await client.analyze_batch(_bills(), run_date=RUN_DATE)
    await client.close()
