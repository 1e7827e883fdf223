import asyncio
import json

import pytest

from tripcurator.errors import MalformedResponse, TransportFailure
from tripcurator.llm.config import LLMConfig
from tripcurator.llm.rerank import build_messages, parse_reply, rerank
from tripcurator.places.models import Candidate, Category, WeatherBrief

SAMPLE_CANDIDATES = [
    Candidate(id="1", name="Onion Cafe", category=Category.CAFE, lat=37.54, lng=127.05, distance_meters=300),
    Candidate(id="2", name="Seoul Forest", category=Category.HEALING, lat=37.544, lng=127.037, distance_meters=900),
    Candidate(id="3", name="Daelim Museum", category=Category.CULTURE, lat=37.545, lng=127.04, address="Seongsu"),
]

RAINY = WeatherBrief(temp_c=14.0, feels_like_c=12.5, humidity=90, condition="Rain", wind=3.2)

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)


class FakeCompleter:
    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


def _run(client, candidates=SAMPLE_CANDIDATES, weather=RAINY, config=ENABLED_CONFIG, **kw):
    return asyncio.run(rerank(client, "CAFE, HEALING, CULTURE", weather, candidates, config=config, **kw))


def _reply(*picked, policy="indoor first"):
    return json.dumps({"policy": policy, "picked": list(picked)})


def test_rerank_orders_by_score_and_returns_reasons():
    client = FakeCompleter(_reply(
        {"id": "1", "score": 0.7, "reason": "Cozy and dry.", "indoor": True},
        {"id": "3", "score": 0.9, "reason": "Indoor exhibitions for a rainy day.", "indoor": True},
    ))

    ordered, reasons = _run(client)

    assert [c.id for c in ordered] == ["3", "1"]
    assert [c.ai_score for c in ordered] == [0.9, 0.7]
    assert reasons == {"3": "Indoor exhibitions for a rainy day.", "1": "Cozy and dry."}
    assert len(client.calls) == 1


def test_rerank_keeps_original_objects_apart_from_score():
    client = FakeCompleter(_reply({"id": "3", "score": 1, "reason": "ok"}))
    ordered, _ = _run(client)
    assert ordered[0].model_copy(update={"ai_score": None}) == SAMPLE_CANDIDATES[2]
    assert SAMPLE_CANDIDATES[2].ai_score is None


def test_rerank_ties_follow_input_order():
    client = FakeCompleter(_reply(
        {"id": "3", "score": 0.5, "reason": "a"},
        {"id": "1", "score": 0.5, "reason": "b"},
        {"id": "2", "score": 0.5, "reason": "c"},
    ))
    ordered, _ = _run(client)
    assert [c.id for c in ordered] == ["1", "2", "3"]


def test_rerank_drops_unknown_ids():
    client = FakeCompleter(_reply(
        {"id": "999", "score": 0.99, "reason": "Made up place."},
        {"id": "2", "score": 0.4, "reason": "Green walk."},
    ))
    ordered, reasons = _run(client)
    assert [c.id for c in ordered] == ["2"]
    assert "999" not in reasons


def test_rerank_tolerates_loose_types_and_legacy_keys():
    raw = json.dumps({
        "weather_policy": "rain: indoor",
        "picked": [
            {"id": 2, "score": "0.8", "reason": None},
            {"id": "1", "score": "high", "reason": "bad score"},
            {"id": "3", "score": 0.6, "reason": "Museum.", "extra": "ignored"},
            {"id": "2", "score": 0.1, "reason": "duplicate"},
        ],
    })
    ordered, reasons = _run(FakeCompleter(raw))
    assert [c.id for c in ordered] == ["2", "3"]
    assert reasons == {"3": "Museum."}


@pytest.mark.parametrize(
    "raw",
    [
        "not valid json{{{",
        "",
        "[]",
        json.dumps({"policy": "x", "picked": []}),
        json.dumps({"policy": "x"}),
        json.dumps({"picked": "all of them"}),
        json.dumps({"picked": [{"id": "404", "score": 1, "reason": "ghost"}]}),
    ],
)
def test_rerank_fallback_on_unusable_reply(raw):
    ordered, reasons = _run(FakeCompleter(raw))
    assert ordered == SAMPLE_CANDIDATES
    assert reasons == {}


def test_rerank_fallback_on_transport_error():
    ordered, reasons = _run(FakeCompleter(error=TransportFailure("API timeout")))
    assert ordered == SAMPLE_CANDIDATES
    assert reasons == {}


def test_rerank_fallback_on_timeout():
    client = FakeCompleter(_reply({"id": "1", "score": 1, "reason": "late"}), delay=1.0)
    ordered, reasons = _run(client, timeout=0.01)
    assert ordered == SAMPLE_CANDIDATES
    assert reasons == {}


def test_rerank_disabled_or_missing_client():
    client = FakeCompleter(_reply({"id": "1", "score": 1, "reason": "x"}))
    assert _run(client, config=DISABLED_CONFIG) == (SAMPLE_CANDIDATES, {})
    assert client.calls == []
    assert _run(None) == (SAMPLE_CANDIDATES, {})


def test_rerank_empty_candidates_skips_call():
    client = FakeCompleter(_reply({"id": "1", "score": 1, "reason": "x"}))
    assert _run(client, candidates=[]) == ([], {})
    assert client.calls == []


def test_rerank_respects_max_picks():
    client = FakeCompleter(_reply(
        {"id": "1", "score": 0.3, "reason": "a"},
        {"id": "2", "score": 0.9, "reason": "b"},
        {"id": "3", "score": 0.6, "reason": "c"},
    ))
    config = LLMConfig(api_key="k", enabled=True, max_picks=2)
    ordered, reasons = _run(client, config=config)
    assert [c.id for c in ordered] == ["2", "3"]
    assert set(reasons) == {"2", "3"}
    assert "at most 2" in client.calls[0][1]["content"]


def test_rerank_works_without_weather():
    client = FakeCompleter(_reply({"id": "2", "score": 0.5, "reason": "Nice park."}))
    ordered, _ = _run(client, weather=None)
    assert [c.id for c in ordered] == ["2"]


# ── Prompt construction ──────────────────────────────────────────────────


def test_build_messages_contains_compact_candidates_and_weather():
    messages = build_messages("CAFE", RAINY, SAMPLE_CANDIDATES)
    assert [m["role"] for m in messages] == ["system", "user"]
    system, user = messages[0]["content"], messages[1]["content"]
    assert "Never invent" in system
    assert "indoor" in system
    assert '"adverse": true' in user
    assert '"condition": "Rain"' in user
    assert '"id": "3"' in user
    assert '"addr": "Seongsu"' in user
    assert '"tags": "HEALING"' in user
    assert '"indoor": false' in user


def test_parse_reply_raises_malformed():
    with pytest.raises(MalformedResponse):
        parse_reply("nope")
    with pytest.raises(MalformedResponse):
        parse_reply(json.dumps({"picked": []}))
    assert parse_reply(_reply({"id": "1", "score": 1})).picked[0].reason == ""


def test_rerank_lets_cancellation_through():
    client = FakeCompleter(_reply({"id": "1", "score": 1, "reason": "late"}), delay=30)

    async def scenario():
        task = asyncio.create_task(rerank(client, "CAFE", RAINY, SAMPLE_CANDIDATES, config=ENABLED_CONFIG))
        for _ in range(100):
            if client.calls:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert len(client.calls) == 1
